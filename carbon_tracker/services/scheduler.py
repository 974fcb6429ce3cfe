"""
Carbon Tracker — Change-Triggered Scheduler
Re-runs the measurement cycle when the page changes.

One slot, no queue: a notification that arrives while a cycle is pending
or running is dropped, so a burst of mutations yields a single cycle.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from carbon_tracker.core.config import settings
from carbon_tracker.services.page import HtmlPage, Observation

logger = logging.getLogger(__name__)


class ChangeTriggeredScheduler:
    def __init__(
        self,
        page: HtmlPage,
        cycle: Callable[[], Awaitable[object]],
        debounce_seconds: Optional[float] = None,
        poll_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self.page = page
        self.cycle = cycle
        self.debounce_seconds = settings.DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.poll_seconds = settings.INIT_POLL_SECONDS if poll_seconds is None else poll_seconds
        self.max_attempts = settings.INIT_MAX_ATTEMPTS if max_attempts is None else max_attempts

        self.is_analyzing = False
        self.is_initialized = False
        self.initialization_error: Optional[str] = None
        self.observation: Optional[Observation] = None
        self._pending: Optional[asyncio.Task] = None

    async def initialize(self) -> bool:
        """Wait for the conversation container, then observe it and run one cycle."""
        for attempt in range(1, self.max_attempts + 1):
            container = self.page.find_container()
            if container is not None:
                logger.info("Chat container found, setting up observer")
                self.observation = self.page.observe(
                    container, self.notify, child_list=True, character_data=True
                )
                self.is_initialized = True
                self.is_analyzing = True
                try:
                    await self._run_cycle()
                finally:
                    self.is_analyzing = False
                logger.info("Carbon Tracker initialized successfully")
                return True

            logger.info(f"Chat container not found, retrying ({attempt}/{self.max_attempts})...")
            if attempt < self.max_attempts:
                await asyncio.sleep(self.poll_seconds)

        self.initialization_error = (
            f"Chat container not found after {self.max_attempts} attempts"
        )
        logger.error(self.initialization_error)
        return False

    def notify(self, *changes) -> bool:
        """Observer callback. Returns True when a cycle was scheduled."""
        if self.is_analyzing or not self.is_initialized:
            return False
        self.is_analyzing = True
        self._pending = asyncio.get_running_loop().create_task(self._debounced_cycle())
        return True

    async def _debounced_cycle(self):
        try:
            await asyncio.sleep(self.debounce_seconds)
            await self._run_cycle()
        finally:
            self.is_analyzing = False

    async def _run_cycle(self):
        try:
            await self.cycle()
        except Exception as e:
            logger.error(f"Error during conversation analysis: {str(e)}")

    async def wait_idle(self):
        """Wait for the pending cycle, if any."""
        if self._pending is not None:
            await asyncio.gather(self._pending, return_exceptions=True)

    async def shutdown(self):
        if self.observation is not None:
            self.observation.disconnect()
            self.observation = None
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            await asyncio.gather(self._pending, return_exceptions=True)
        self.is_initialized = False
