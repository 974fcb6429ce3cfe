"""Tests for the in-memory and SQL-backed key/value stores."""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from carbon_tracker.core.database import Base
from carbon_tracker.services.storage import DatabaseStore, MemoryStore, StorageError


@pytest.fixture
async def db_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield DatabaseStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


async def test_memory_store_copies_values():
    store = MemoryStore()
    value = {"buckets": {"2024-03-15": 1}}
    await store.set("k", value)
    value["buckets"]["2024-03-15"] = 99

    stored = await store.get("k")
    assert stored == {"buckets": {"2024-03-15": 1}}
    stored["buckets"].clear()
    assert await store.get("k") == {"buckets": {"2024-03-15": 1}}


async def test_memory_store_missing_key():
    assert await MemoryStore().get("nope") is None


async def test_database_store_round_trip(db_store):
    assert await db_store.get("carbon_tracker_stats") is None
    assert await db_store.set("carbon_tracker_stats", {"userTokens": 4})
    assert await db_store.get("carbon_tracker_stats") == {"userTokens": 4}


async def test_database_store_set_many_overwrites(db_store):
    await db_store.set("a", {"n": 1})
    await db_store.set_many({"a": {"n": 2}, "b": {"2024-W11": {"n": 3}}})

    assert await db_store.items() == {"a": {"n": 2}, "b": {"2024-W11": {"n": 3}}}


async def test_database_store_errors_are_wrapped(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = DatabaseStore(async_sessionmaker(engine, expire_on_commit=False))
    with pytest.raises(StorageError):
        await store.get("missing_table")
    await engine.dispose()
