"""
Carbon Tracker — Database
Async SQLAlchemy engine and session factory backing the key/value store.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from carbon_tracker.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def get_store():
    """Dashboard dependency returning the SQL-backed key/value store."""
    from carbon_tracker.services.storage import DatabaseStore

    return DatabaseStore(async_session)
