"""Vesting service - wires the calculator, store and collaborators together."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator

from token_vesting.engine.calculator import claimable_amount, vested_amount
from token_vesting.engine.checked import checked_add, checked_sub, is_i64, is_u64
from token_vesting.errors import (
    AlreadyRevoked,
    CliffNotReached,
    InvalidAmount,
    InvalidCliff,
    InvalidInterval,
    InvalidName,
    InvalidTimeRange,
    NothingToClaim,
    NotRevocable,
    ScheduleNotFound,
    TransferFailed,
    VestingRevoked,
)
from token_vesting.interfaces.authority import SignerVerifier
from token_vesting.interfaces.events import EventSink
from token_vesting.interfaces.store import ScheduleStore
from token_vesting.interfaces.transfer import TransferService
from token_vesting.models.events import (
    VestingClaimed,
    VestingEvent,
    VestingInitialized,
    VestingRevoked as VestingRevokedEvent,
)
from token_vesting.models.records import ClaimResult, RevokeResult, TransferResult
from token_vesting.models.schedule import (
    NAME_MAX_BYTES,
    CustodyAuthority,
    ScheduleKey,
    VestingSchedule,
)

log = logging.getLogger(__name__)


def validate_schedule_params(
    start_time: int,
    end_time: int,
    total_amount: int,
    cliff_percentage: int,
    payment_interval: int | None,
    name: str,
) -> int:
    """Reject bad creation parameters. Returns the effective payment interval."""
    if not (is_i64(start_time) and is_i64(end_time)) or end_time <= start_time:
        raise InvalidTimeRange()
    if (
        not isinstance(cliff_percentage, int)
        or isinstance(cliff_percentage, bool)
        or not 0 <= cliff_percentage <= 100
    ):
        raise InvalidCliff()
    if payment_interval is not None and not (is_i64(payment_interval) and payment_interval > 0):
        raise InvalidInterval()
    if not is_u64(total_amount):
        raise InvalidAmount()
    if not name or len(name.encode("utf-8")) > NAME_MAX_BYTES:
        raise InvalidName()
    return payment_interval or 0


def _require_success(result: TransferResult, what: str, key: ScheduleKey) -> None:
    if not result.success:
        log.warning("%s for %s failed: %s", what, key, result.error)
        raise TransferFailed(f"{what} for {key} failed: {result.error}")


class VestingService:
    """Create, claim, revoke and estimate vesting schedules.

    Every transition runs inside one store transaction together with its
    transfer calls: if a transfer reports failure the transaction rolls
    back and nothing is observable. Operations on the same schedule are
    serialised so two claims can never act on the same claimable snapshot.
    Time is always supplied by the caller.
    """

    def __init__(
        self,
        store: ScheduleStore,
        transfer: TransferService,
        events: EventSink | None = None,
        verifier: SignerVerifier | None = None,
    ) -> None:
        self.store = store
        self.transfer = transfer
        self.events = events
        self.verifier = verifier
        self._locks: dict[ScheduleKey, asyncio.Lock] = {}
        self._lock_users: Counter[ScheduleKey] = Counter()

    @asynccontextmanager
    async def _serialised(self, key: ScheduleKey) -> AsyncIterator[None]:
        """Hold the per-schedule lock; dropped once no task holds or awaits it."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _emit(self, event: VestingEvent) -> None:
        if self.events is None:
            return
        try:
            await self.events.emit(event)
        except Exception as exc:
            log.warning("Event delivery failed for %s: %s", type(event).__name__, exc)

    async def _load(self, key: ScheduleKey) -> VestingSchedule:
        schedule = await self.store.get_schedule(key)
        if schedule is None:
            raise ScheduleNotFound(f"Vesting schedule {key} not found.")
        return schedule

    # ── Create ─────────────────────────────────────────────

    async def create(
        self,
        beneficiary: str,
        creator: str,
        asset: str,
        start_time: int,
        end_time: int,
        total_amount: int,
        cliff_percentage: int = 0,
        payment_interval: int | None = None,
        name: str = "",
        revocable: bool = False,
    ) -> VestingSchedule:
        """Create a schedule and move ``total_amount`` from creator into custody."""
        interval = validate_schedule_params(
            start_time, end_time, total_amount, cliff_percentage, payment_interval, name,
        )
        schedule = VestingSchedule(
            beneficiary=beneficiary,
            creator=creator,
            asset=asset,
            start_time=start_time,
            end_time=end_time,
            total_amount=total_amount,
            cliff_percentage=cliff_percentage,
            payment_interval=interval,
            name=name,
            revocable=revocable,
        )
        key = schedule.key

        async with self._serialised(key):
            async with self.store.transaction():
                await self.store.insert_schedule(schedule)
                result = await self.transfer.open_custody(
                    CustodyAuthority.for_schedule(schedule), creator, total_amount, asset,
                )
                _require_success(result, "Custody funding", key)

        log.info(
            "Created schedule %s: %d units, t=[%d, %d), cliff %d%%, interval %ds",
            key, total_amount, start_time, end_time, cliff_percentage, interval,
        )
        await self._emit(VestingInitialized(
            key=key, beneficiary=beneficiary, creator=creator, total_amount=total_amount,
        ))
        return schedule

    # ── Claim ──────────────────────────────────────────────

    async def claim(self, key: ScheduleKey, now: int, caller: str | None = None) -> ClaimResult:
        """Pay out everything claimable at ``now`` to the beneficiary."""
        async with self._serialised(key):
            async with self.store.transaction():
                schedule = await self._load(key)
                if self.verifier is not None and caller is not None:
                    self.verifier.verify_claimant(schedule, caller)

                if schedule.is_revoked:
                    raise VestingRevoked()
                if now < schedule.start_time:
                    raise CliffNotReached()
                amount = claimable_amount(schedule, now)
                if amount == 0:
                    raise NothingToClaim()

                claimed_total = checked_add(schedule.claimed_amount, amount)
                await self.store.apply_claim(key, claimed_total, now)
                result = await self.transfer.transfer(
                    CustodyAuthority.for_schedule(schedule),
                    schedule.beneficiary, amount, schedule.asset,
                )
                _require_success(result, "Claim transfer", key)

        log.info("Claimed %d units from %s (total %d)", amount, key, claimed_total)
        await self._emit(VestingClaimed(key=key, amount=amount, time=now))
        return ClaimResult(
            key=key, amount=amount, claimed_at=now,
            claimed_total=claimed_total, reference=result.reference,
        )

    # ── Revoke ─────────────────────────────────────────────

    async def revoke(self, key: ScheduleKey, now: int, caller: str | None = None) -> RevokeResult:
        """Return the unclaimed remainder to the creator and stop further claims.

        Vested-but-unclaimed units go back to the creator as well.
        """
        async with self._serialised(key):
            async with self.store.transaction():
                schedule = await self._load(key)
                if self.verifier is not None and caller is not None:
                    self.verifier.verify_revoker(schedule, caller)

                if not schedule.revocable:
                    raise NotRevocable()
                if schedule.is_revoked:
                    raise AlreadyRevoked()

                unvested = checked_sub(schedule.total_amount, schedule.claimed_amount)
                authority = CustodyAuthority.for_schedule(schedule)

                # Refund and close commit as one step on the backend.
                released = await self.transfer.release_custody(
                    authority, schedule.creator, unvested, schedule.creator,
                )
                _require_success(released, "Custody release", key)

                # Revocation time must stay non-zero and not precede the start.
                revoked_at = max(now, schedule.start_time, 1)
                await self.store.apply_revoke(key, revoked_at)

        log.info("Revoked %s: %d units returned to %s", key, unvested, schedule.creator)
        await self._emit(VestingRevokedEvent(key=key, unvested=unvested, timestamp=revoked_at))
        return RevokeResult(
            key=key, returned_amount=unvested, revoked_at=revoked_at,
            reference=released.reference,
        )

    # ── Read-only ──────────────────────────────────────────

    async def estimate(self, key: ScheduleKey, now: int) -> int:
        """Claimable amount at ``now`` without committing anything."""
        return claimable_amount(await self._load(key), now)

    async def vested(self, key: ScheduleKey, now: int) -> int:
        return vested_amount(await self._load(key), now)

    async def get(self, key: ScheduleKey) -> VestingSchedule:
        return await self._load(key)

    async def list_schedules(
        self, beneficiary: str | None = None, creator: str | None = None,
    ) -> list[VestingSchedule]:
        return await self.store.list_schedules(beneficiary=beneficiary, creator=creator)
