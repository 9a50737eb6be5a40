"""Schedule persistence."""

from token_vesting.storage.sqlite import SQLiteScheduleStore

__all__ = ["SQLiteScheduleStore"]
