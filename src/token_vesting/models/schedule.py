"""The vesting schedule record and its identity types."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

NAME_MAX_BYTES = 32
NOT_REVOKED = 0


@dataclass(frozen=True)
class ScheduleKey:
    """Composite identity of a schedule: beneficiary + asset + name."""

    beneficiary: str
    asset: str
    name: str

    @property
    def custody_id(self) -> str:
        """Deterministic identifier of the schedule's custody balance."""
        digest = hashlib.sha256(
            b"vesting\x00"
            + self.beneficiary.encode("utf-8") + b"\x00"
            + self.asset.encode("utf-8") + b"\x00"
            + self.name.encode("utf-8")
        ).hexdigest()
        return f"custody:{digest[:32]}"

    def __str__(self) -> str:
        return f"{self.beneficiary}/{self.asset}/{self.name}"


@dataclass(frozen=True)
class CustodyAuthority:
    """Capability to move funds out of one schedule's custody balance.

    Minted by the service from a stored schedule and handed only to the
    transfer collaborator. Holds no secret material: backends that need a
    signing key derive it from ``custody_id``.
    """

    key: ScheduleKey
    custody_id: str
    asset: str
    creator: str

    @classmethod
    def for_schedule(cls, schedule: VestingSchedule) -> CustodyAuthority:
        return cls(
            key=schedule.key,
            custody_id=schedule.custody_id,
            asset=schedule.asset,
            creator=schedule.creator,
        )


@dataclass
class VestingSchedule:
    """Canonical vesting record.

    Amounts are unsigned 64-bit integers, timestamps signed 64-bit seconds
    since the epoch. ``revoked_at == 0`` means not revoked.
    """

    beneficiary: str
    creator: str
    asset: str
    start_time: int
    end_time: int
    total_amount: int
    claimed_amount: int = 0
    cliff_percentage: int = 0
    payment_interval: int = 0  # 0 = continuous release
    name: str = ""
    revocable: bool = False
    revoked_at: int = NOT_REVOKED
    last_claimed_at: int = 0

    @property
    def key(self) -> ScheduleKey:
        return ScheduleKey(self.beneficiary, self.asset, self.name)

    @property
    def custody_id(self) -> str:
        return self.key.custody_id

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at != NOT_REVOKED

    @property
    def remaining_amount(self) -> int:
        """Units still held in custody."""
        return self.total_amount - self.claimed_amount
