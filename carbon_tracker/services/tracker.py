"""
Carbon Tracker — Engine
One instance per observed page: owns the session, ledger, scanner and scheduler.
"""

import logging
from typing import Optional

from carbon_tracker.schemas.schemas import SessionMeasurement
from carbon_tracker.services.ledger import IncrementalLedger
from carbon_tracker.services.page import HtmlPage, is_tracked_url
from carbon_tracker.services.scanner import ConversationScanner, SoupMessageSource
from carbon_tracker.services.scheduler import ChangeTriggeredScheduler
from carbon_tracker.services.session import SessionState
from carbon_tracker.services.storage import SESSION_STATS, KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class CarbonTracker:
    def __init__(self, page: HtmlPage, store: KeyValueStore, url: Optional[str] = None, **scheduler_options):
        self.page = page
        self.store = store
        self.url = url
        self.session = SessionState()
        self.ledger = IncrementalLedger(store, self.session)
        self.scanner = ConversationScanner()
        self.scheduler = ChangeTriggeredScheduler(page, self.analyze, **scheduler_options)

    @property
    def stats(self) -> SessionMeasurement:
        return self.session.measurement

    async def start(self) -> bool:
        if self.url is not None and not is_tracked_url(self.url):
            logger.info(f"Not on a tracked chat domain ({self.url}), carbon tracker will not initialize")
            return False

        try:
            self.session.restore(await self.store.get(SESSION_STATS))
        except StorageError as e:
            logger.error(f"Error loading stats from storage: {str(e)}")

        return await self.scheduler.initialize()

    async def analyze(self):
        """Scan the page and persist the result."""
        measurement = self.scanner.scan(
            SoupMessageSource(self.page.document),
            session_start_time=self.session.measurement.session_start_time,
        )
        return await self.ledger.record(measurement)

    async def reset(self) -> bool:
        return await self.ledger.reset()

    async def stop(self):
        await self.scheduler.shutdown()
