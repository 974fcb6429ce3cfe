"""
Carbon Tracker — Key/Value Store
Asynchronous get/set persistence primitive shared by the ledger,
the web activity counter and the dashboard.
"""

import copy
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from carbon_tracker.models.stored_record import StoredRecord

logger = logging.getLogger(__name__)


# Storage keys
SESSION_STATS = "carbon_tracker_stats"
CHAT_GLOBAL_STATS = "carbon_tracker_global_stats_chatgpt"
CHAT_PERIOD_STATS = {
    "daily": "carbon_tracker_daily_stats_chatgpt",
    "weekly": "carbon_tracker_weekly_stats_chatgpt",
    "monthly": "carbon_tracker_monthly_stats_chatgpt",
}
WEB_GLOBAL_STATS = "web_carbon_stats"
WEB_PERIOD_STATS = {
    "daily": "web_carbon_daily_stats",
    "weekly": "web_carbon_weekly_stats",
    "monthly": "web_carbon_monthly_stats",
}


class StorageError(Exception):
    """A store read or write failed."""


class KeyValueStore:
    """Interface for the persistence primitive."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> bool:
        return await self.set_many({key: value})

    async def set_many(self, values: Dict[str, Any]) -> bool:
        raise NotImplementedError

    async def items(self) -> Dict[str, Any]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Dict-backed store; values are copied in and out like a serializing store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set_many(self, values: Dict[str, Any]) -> bool:
        self._data.update(copy.deepcopy(values))
        return True

    async def items(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


class DatabaseStore(KeyValueStore):
    """SQLAlchemy-backed store; each `set_many` is one transaction."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[Any]:
        try:
            async with self.session_factory() as session:
                record = await session.get(StoredRecord, key)
                return record.value if record else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading '{key}' from storage: {str(e)}")
            raise StorageError(str(e)) from e

    async def set_many(self, values: Dict[str, Any]) -> bool:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    for key, value in values.items():
                        record = await session.get(StoredRecord, key)
                        if record is None:
                            session.add(StoredRecord(key=key, value=value))
                        else:
                            record.value = value
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error writing {sorted(values)} to storage: {str(e)}")
            raise StorageError(str(e)) from e

    async def items(self) -> Dict[str, Any]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(StoredRecord).order_by(StoredRecord.key))
                return {r.key: r.value for r in result.scalars().all()}
        except SQLAlchemyError as e:
            logger.error(f"Error listing storage: {str(e)}")
            raise StorageError(str(e)) from e
