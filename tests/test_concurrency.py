"""Concurrent operations on the same and on different schedules."""

from __future__ import annotations

import asyncio

from token_vesting.errors import AlreadyRevoked, NothingToClaim, VestingRevoked
from token_vesting.models.schedule import ScheduleKey
from tests.factories import ASSET, BENEFICIARY, KEY, make_create_kwargs


async def test_concurrent_claims_pay_once(service, schedule, ledger):
    """Two claims at the same instant: exactly one pays, the other finds nothing."""
    results = await asyncio.gather(
        service.claim(KEY, 1500),
        service.claim(KEY, 1500),
        return_exceptions=True,
    )

    paid = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert [r.amount for r in paid] == [600]
    assert len(failed) == 1 and isinstance(failed[0], NothingToClaim)
    assert await ledger.balance_of(BENEFICIARY, ASSET) == 600
    assert (await service.get(KEY)).claimed_amount == 600


async def test_claim_racing_revoke(service, schedule, ledger):
    """Whichever lands first, tokens are conserved and the schedule ends revoked."""
    results = await asyncio.gather(
        service.claim(KEY, 1500),
        service.revoke(KEY, 1500),
        return_exceptions=True,
    )

    claim_result, revoke_result = results
    assert not isinstance(revoke_result, Exception)
    if isinstance(claim_result, Exception):
        assert isinstance(claim_result, VestingRevoked)
        paid = 0
    else:
        paid = claim_result.amount
    assert paid + revoke_result.returned_amount == 1000
    assert await ledger.balance_of(BENEFICIARY, ASSET) == paid
    assert (await service.get(KEY)).is_revoked


async def test_double_revoke(service, schedule):
    results = await asyncio.gather(
        service.revoke(KEY, 1500),
        service.revoke(KEY, 1500),
        return_exceptions=True,
    )
    assert sum(isinstance(r, AlreadyRevoked) for r in results) == 1


async def test_independent_schedules(service, ledger):
    names = [f"grant-{i}" for i in range(5)]
    for name in names:
        await service.create(**make_create_kwargs(name=name))

    keys = [ScheduleKey(BENEFICIARY, ASSET, name) for name in names]
    results = await asyncio.gather(*(service.claim(k, 2000) for k in keys))

    assert [r.amount for r in results] == [1000] * 5
    assert await ledger.balance_of(BENEFICIARY, ASSET) == 5000


async def test_schedule_locks_are_released(service, schedule):
    """Per-schedule locks do not accumulate, even for unknown keys."""
    await asyncio.gather(
        service.claim(KEY, 1500),
        service.claim(KEY, 1500),
        service.claim(ScheduleKey(BENEFICIARY, ASSET, "ghost"), 1500),
        return_exceptions=True,
    )
    await service.revoke(KEY, 1600)

    assert service._locks == {}
    assert not service._lock_users
