"""Data models for token_vesting."""

from token_vesting.models.config import StellarConfig, TransferBackend, VestingConfig
from token_vesting.models.events import (
    VestingClaimed,
    VestingEvent,
    VestingInitialized,
    VestingRevoked,
)
from token_vesting.models.records import (
    ActivityRecord,
    ClaimResult,
    RevokeResult,
    TransferResult,
)
from token_vesting.models.schedule import (
    NAME_MAX_BYTES,
    NOT_REVOKED,
    CustodyAuthority,
    ScheduleKey,
    VestingSchedule,
)

__all__ = [
    "StellarConfig", "TransferBackend", "VestingConfig",
    "VestingClaimed", "VestingEvent", "VestingInitialized", "VestingRevoked",
    "ActivityRecord", "ClaimResult", "RevokeResult", "TransferResult",
    "NAME_MAX_BYTES", "NOT_REVOKED", "CustodyAuthority", "ScheduleKey",
    "VestingSchedule",
]
