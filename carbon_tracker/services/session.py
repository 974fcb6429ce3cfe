"""
Carbon Tracker — Session State
Current scan totals plus the snapshot last written to the ledger.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from carbon_tracker.schemas.schemas import Delta, SessionMeasurement, Snapshot, now_ms

logger = logging.getLogger(__name__)


class SessionState:
    def __init__(self, measurement: Optional[SessionMeasurement] = None):
        self.measurement = measurement or SessionMeasurement()
        self.baseline: Optional[Snapshot] = None

    def restore(self, record: Optional[dict]) -> bool:
        """Load a persisted session record. The baseline stays unset."""
        if not record:
            return False
        try:
            self.measurement = SessionMeasurement.model_validate(record)
        except ValidationError as e:
            logger.error(f"Ignoring malformed session record: {str(e)}")
            return False
        logger.info(f"Loaded stats from storage: {self.measurement.to_record()}")
        return True

    def apply_scan(self, measurement: SessionMeasurement):
        self.measurement = measurement.model_copy(
            update={"session_start_time": self.measurement.session_start_time}
        )

    def compute_delta(self) -> Delta:
        """Change since the last persisted snapshot, floored at zero."""
        current = self.measurement
        if self.baseline is None:
            delta = Delta(
                input_tokens=current.user_tokens,
                output_tokens=current.assistant_tokens,
                carbon_emissions=current.carbon_emissions,
            )
        else:
            delta = Delta(
                input_tokens=current.user_tokens - self.baseline.user_tokens,
                output_tokens=current.assistant_tokens - self.baseline.assistant_tokens,
                carbon_emissions=current.carbon_emissions - self.baseline.carbon_emissions,
            )

        if delta.is_negative:
            logger.warning(f"Session shrank since last save ({delta.model_dump()}); crediting nothing")
            return Delta()
        return delta

    def mark_persisted(self, snapshot: Optional[Snapshot] = None):
        self.baseline = snapshot if snapshot is not None else Snapshot.of(self.measurement)

    def rebaseline_to_zero(self):
        self.measurement = SessionMeasurement(session_start_time=now_ms())
        self.baseline = Snapshot()
