"""Carbon Tracker — Database Models"""

from carbon_tracker.models.stored_record import StoredRecord

__all__ = ["StoredRecord"]
