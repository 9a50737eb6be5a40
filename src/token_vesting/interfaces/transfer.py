"""TransferService protocol - custody and movement of the vested asset."""

from __future__ import annotations

from typing import Protocol

from token_vesting.models.records import TransferResult
from token_vesting.models.schedule import CustodyAuthority


class TransferService(Protocol):
    """Moves value between a schedule's custody balance and its parties.

    Failures are reported through ``TransferResult.success``; the caller
    decides whether to abort the enclosing operation.
    """

    async def open_custody(
        self, authority: CustodyAuthority, funder: str, amount: int, asset: str,
    ) -> TransferResult:
        """Create the custody balance and move ``amount`` into it from ``funder``."""
        ...

    async def transfer(
        self, authority: CustodyAuthority, to: str, amount: int, asset: str,
    ) -> TransferResult:
        """Move ``amount`` from custody to ``to``, authorized by ``authority``."""
        ...

    async def close_custody(
        self, authority: CustodyAuthority, rent_recipient: str,
    ) -> TransferResult:
        """Release the custody balance, returning any deposit to ``rent_recipient``."""
        ...

    async def release_custody(
        self, authority: CustodyAuthority, refund_to: str, amount: int, rent_recipient: str,
    ) -> TransferResult:
        """Pay ``amount`` to ``refund_to`` and close custody as one indivisible step.

        Either the refund and the close both happen or neither does.
        """
        ...
