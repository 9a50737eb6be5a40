"""Operation results and persisted audit records."""

from __future__ import annotations

from dataclasses import dataclass

from token_vesting.models.schedule import ScheduleKey


@dataclass
class TransferResult:
    """Outcome reported by a transfer collaborator."""

    success: bool
    amount: int = 0
    reference: str | None = None  # tx hash or ledger entry id
    error: str | None = None


@dataclass
class ClaimResult:
    """Result of a committed claim."""

    key: ScheduleKey
    amount: int
    claimed_at: int
    claimed_total: int
    reference: str | None = None


@dataclass
class RevokeResult:
    """Result of a committed revocation."""

    key: ScheduleKey
    returned_amount: int
    revoked_at: int
    reference: str | None = None


@dataclass
class ActivityRecord:
    """A single audit log entry."""

    id: int
    event_type: str
    beneficiary: str | None
    asset: str | None
    name: str | None
    amount: int | None
    message: str
    created_at: str
