"""ScheduleStore protocol - owns schedule records and their transitions."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from token_vesting.models.records import ActivityRecord
from token_vesting.models.schedule import ScheduleKey, VestingSchedule


class ScheduleStore(Protocol):
    """Persists vesting schedules keyed by (beneficiary, asset, name)."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        """Close the database connection."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """All writes inside commit together or not at all."""
        ...

    # ── Schedules ──────────────────────────────────────────

    async def insert_schedule(self, schedule: VestingSchedule) -> None:
        """Persist a new schedule. Raises ScheduleExists on key collision."""
        ...

    async def get_schedule(self, key: ScheduleKey) -> VestingSchedule | None:
        ...

    async def list_schedules(
        self, beneficiary: str | None = None, creator: str | None = None,
    ) -> list[VestingSchedule]:
        ...

    async def apply_claim(
        self, key: ScheduleKey, claimed_amount: int, last_claimed_at: int,
    ) -> None:
        ...

    async def apply_revoke(self, key: ScheduleKey, revoked_at: int) -> None:
        ...

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        key: ScheduleKey | None = None,
        amount: int | None = None,
    ) -> None:
        ...

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        ...
