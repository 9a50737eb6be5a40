"""Vesting calculator - pure functions over a schedule snapshot and a time.

Release model: ``cliff_percentage`` of the total unlocks at ``start_time``;
the remainder (the linear portion) unlocks either continuously or in equal
per-interval chunks until ``end_time``, where everything is vested exactly.
"""

from __future__ import annotations

import logging

from token_vesting.engine.checked import checked_div, checked_mul, checked_sub, is_i64
from token_vesting.errors import MathOverflow
from token_vesting.models.schedule import VestingSchedule

log = logging.getLogger(__name__)


def cliff_amount(schedule: VestingSchedule) -> int:
    """Units released atomically at ``start_time``."""
    return checked_div(
        checked_mul(schedule.total_amount, schedule.cliff_percentage), 100
    )


def _linear_vested(schedule: VestingSchedule, linear_amount: int, now: int) -> int:
    elapsed = now - schedule.start_time
    duration = schedule.end_time - schedule.start_time
    if not is_i64(duration):
        raise MathOverflow("Math overflow in schedule duration.")

    if schedule.payment_interval > 0:
        total_intervals = duration // schedule.payment_interval
        intervals_elapsed = elapsed // schedule.payment_interval

        if total_intervals == 0:
            # Interval longer than the whole schedule: all-or-nothing.
            return linear_amount if elapsed >= duration else 0

        # Truncate per interval first; rounding loss accumulates per step.
        amount_per_interval = checked_div(linear_amount, total_intervals)
        return checked_mul(amount_per_interval, intervals_elapsed)

    return checked_div(checked_mul(linear_amount, elapsed), duration)


def _total_vested(schedule: VestingSchedule, now: int) -> int:
    """Vested units at ``now``, where start_time <= now < end_time."""
    cliff = cliff_amount(schedule)
    linear_amount = checked_sub(schedule.total_amount, cliff)
    vested = _linear_vested(schedule, linear_amount, now)
    return min(schedule.total_amount, cliff + vested)


def vested_amount(schedule: VestingSchedule, now: int) -> int:
    """Total units vested at ``now``, ignoring claims and revocation."""
    now = min(now, schedule.end_time)
    if now < schedule.start_time:
        return 0
    if now == schedule.end_time:
        return schedule.total_amount
    return _total_vested(schedule, now)


def claimable_amount(schedule: VestingSchedule, now: int) -> int:
    """Units the beneficiary could claim at ``now``.

    Zero before the start and after revocation. At or past ``end_time`` the
    whole unclaimed remainder is claimable with no rounding loss. Claims
    that already exceed the vested total clamp to zero.

    Raises:
        MathOverflow: an intermediate value left the unsigned 64-bit range.
    """
    now = min(now, schedule.end_time)

    if schedule.revoked_at > 0 or now < schedule.start_time:
        return 0

    if now == schedule.end_time:
        return checked_sub(schedule.total_amount, schedule.claimed_amount)

    total_vested = _total_vested(schedule, now)
    log.debug(
        "Vested %d of %d at t=%d (claimed %d)",
        total_vested, schedule.total_amount, now, schedule.claimed_amount,
    )
    if schedule.claimed_amount >= total_vested:
        return 0
    return total_vested - schedule.claimed_amount
