"""
Carbon Tracker — Incremental Ledger
Folds each session measurement into the all-time and period aggregates.

Every cycle diffs the current session against the snapshot last written,
then writes the session record, the global aggregate and the daily, weekly
and monthly buckets as one unit. The snapshot only advances after that unit
is stored, so a failed write is retried with the same delta next cycle.
Saves and resets on one ledger are serialised by its lock; nothing
coordinates separate engine instances sharing one store.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from carbon_tracker.schemas.schemas import (
    ChatGPTTimePeriodStats,
    Delta,
    GlobalCarbonStats,
    SessionMeasurement,
    Snapshot,
    now_ms,
)
from carbon_tracker.services.session import SessionState
from carbon_tracker.services.storage import (
    CHAT_GLOBAL_STATS,
    CHAT_PERIOD_STATS,
    SESSION_STATS,
    KeyValueStore,
    StorageError,
)
from carbon_tracker.utils.periods import period_keys

logger = logging.getLogger(__name__)


def apply_to_global(record: Optional[dict], delta: Delta, timestamp: int) -> dict:
    stats = GlobalCarbonStats.model_validate(record or {})
    stats.total_input_tokens += delta.input_tokens
    stats.total_output_tokens += delta.output_tokens
    stats.total_carbon_emissions += delta.carbon_emissions
    stats.last_updated = timestamp
    return stats.to_record()


def apply_to_bucket(record: Optional[dict], delta: Delta, timestamp: int) -> dict:
    bucket = ChatGPTTimePeriodStats.model_validate(record or {})
    bucket.input_tokens += delta.input_tokens
    bucket.output_tokens += delta.output_tokens
    bucket.carbon_emissions += delta.carbon_emissions
    bucket.last_updated = timestamp
    return bucket.to_record()


class IncrementalLedger:
    def __init__(self, store: KeyValueStore, session: SessionState,
                 clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.session = session
        self.clock = clock
        # Held from the delta computation until the baseline moves, and across a reset.
        self.lock = asyncio.Lock()

    async def record(self, measurement: SessionMeasurement) -> Optional[Delta]:
        """Adopt a fresh scan and persist it in one step."""
        async with self.lock:
            self.session.apply_scan(measurement)
            return await self._save()

    async def save(self) -> Optional[Delta]:
        """Persist the session and credit its delta. Returns None when the write failed."""
        async with self.lock:
            return await self._save()

    async def _save(self) -> Optional[Delta]:
        measurement = self.session.measurement
        snapshot = Snapshot.of(measurement)
        delta = self.session.compute_delta()
        timestamp = now_ms()

        values = {SESSION_STATS: measurement.to_record()}
        try:
            if not delta.is_zero:
                values[CHAT_GLOBAL_STATS] = apply_to_global(
                    await self.store.get(CHAT_GLOBAL_STATS), delta, timestamp
                )
                for period, key in period_keys(self.clock()).items():
                    storage_key = CHAT_PERIOD_STATS[period]
                    buckets = await self.store.get(storage_key) or {}
                    buckets[key] = apply_to_bucket(buckets.get(key), delta, timestamp)
                    values[storage_key] = buckets

            await self.store.set_many(values)
        except StorageError as e:
            logger.error(f"Error saving stats to storage: {str(e)}")
            return None

        self.session.mark_persisted(snapshot)
        logger.info(
            f"Stats saved to storage: {measurement.total_tokens} tokens, "
            f"{measurement.carbon_emissions:.6f} g CO2e (credited {delta.carbon_emissions:.6f} g)"
        )
        return delta

    async def reset(self) -> bool:
        """Flush the final delta, then start a fresh session from a zero baseline."""
        async with self.lock:
            if not self.session.measurement.is_zero:
                if await self._save() is None:
                    return False

            self.session.rebaseline_to_zero()
            try:
                await self.store.set(SESSION_STATS, self.session.measurement.to_record())
            except StorageError as e:
                logger.error(f"Error saving reset stats to storage: {str(e)}")
                return False
        logger.info("Stats reset successfully")
        return True
