"""
Carbon Tracker — Web Activity Counter
Counts page visits and searches at a fixed emission per event.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from carbon_tracker.core.config import settings
from carbon_tracker.schemas.schemas import WebCarbonStats, now_ms
from carbon_tracker.services.storage import (
    WEB_GLOBAL_STATS,
    WEB_PERIOD_STATS,
    KeyValueStore,
    StorageError,
)
from carbon_tracker.utils.periods import period_keys

logger = logging.getLogger(__name__)

SEARCH_URL_MARKERS = (
    "google.com/search",
    "bing.com/search",
    "yahoo.com/search",
    "duckduckgo.com/",
)


def is_search_url(url: Optional[str]) -> bool:
    if not url:
        return False
    return any(marker in url for marker in SEARCH_URL_MARKERS)


def _add_event(record: Optional[dict], visits: int, searches: int, emissions: float, timestamp: int) -> dict:
    stats = WebCarbonStats.model_validate(record or {})
    stats.total_visits += visits
    stats.total_searches += searches
    stats.total_carbon_emissions += emissions
    stats.last_updated = timestamp
    return stats.to_record()


class WebActivityTracker:
    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def record_page_load(self, url: Optional[str]) -> Optional[dict]:
        if is_search_url(url):
            return None
        return await self.record_visit()

    async def record_navigation(self, url: Optional[str]) -> Optional[dict]:
        if not is_search_url(url):
            return None
        return await self.record_search()

    async def record_visit(self) -> Optional[dict]:
        logger.info("Updating page visits...")
        return await self._record(visits=1, searches=0, emissions=settings.VISIT_EMISSIONS_G)

    async def record_search(self) -> Optional[dict]:
        logger.info("Updating web searches...")
        return await self._record(visits=0, searches=1, emissions=settings.SEARCH_EMISSIONS_G)

    async def _record(self, visits: int, searches: int, emissions: float) -> Optional[dict]:
        timestamp = now_ms()
        try:
            stats = _add_event(await self.store.get(WEB_GLOBAL_STATS), visits, searches, emissions, timestamp)
            values = {WEB_GLOBAL_STATS: stats}
            for period, key in period_keys(self.clock()).items():
                storage_key = WEB_PERIOD_STATS[period]
                buckets = await self.store.get(storage_key) or {}
                buckets[key] = _add_event(buckets.get(key), visits, searches, emissions, timestamp)
                values[storage_key] = buckets
            await self.store.set_many(values)
        except StorageError as e:
            logger.error(f"Failed to update web activity: {str(e)}")
            return None
        return stats
