"""Notification payloads emitted after each committed transition."""

from __future__ import annotations

from dataclasses import dataclass

from token_vesting.models.schedule import ScheduleKey


@dataclass(frozen=True)
class VestingInitialized:
    """A schedule was created and its custody balance funded."""

    key: ScheduleKey
    beneficiary: str
    creator: str
    total_amount: int


@dataclass(frozen=True)
class VestingClaimed:
    """The beneficiary received ``amount`` units at ``time``."""

    key: ScheduleKey
    amount: int
    time: int


@dataclass(frozen=True)
class VestingRevoked:
    """The creator revoked the schedule and got ``unvested`` units back."""

    key: ScheduleKey
    unvested: int
    timestamp: int


VestingEvent = VestingInitialized | VestingClaimed | VestingRevoked
