"""
Carbon Tracker — StoredRecord Model
One row per persisted key/value record.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON

from carbon_tracker.core.database import Base


class StoredRecord(Base):
    __tablename__ = "stored_records"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<StoredRecord(key='{self.key}')>"
