"""Mock implementations of the external collaborators."""

from __future__ import annotations

from token_vesting.models.events import VestingEvent
from token_vesting.models.records import TransferResult
from token_vesting.models.schedule import CustodyAuthority


class MockTransferService:
    """Implements TransferService protocol. Records calls, never moves value."""

    def __init__(
        self,
        succeed: bool = True,
        fail_on: set[str] | None = None,
        error: str | None = None,
    ) -> None:
        self.succeed = succeed
        self.fail_on = fail_on or set()
        self._error = error
        self.calls: list[tuple] = []

    def _result(self, op: str, amount: int) -> TransferResult:
        if self.succeed and op not in self.fail_on:
            return TransferResult(success=True, amount=amount, reference=f"mock_{op}_{len(self.calls)}")
        return TransferResult(success=False, amount=amount, error=self._error or f"mock {op} failure")

    async def open_custody(
        self, authority: CustodyAuthority, funder: str, amount: int, asset: str,
    ) -> TransferResult:
        self.calls.append(("open_custody", authority.custody_id, funder, amount, asset))
        return self._result("open_custody", amount)

    async def transfer(
        self, authority: CustodyAuthority, to: str, amount: int, asset: str,
    ) -> TransferResult:
        self.calls.append(("transfer", authority.custody_id, to, amount, asset))
        return self._result("transfer", amount)

    async def close_custody(
        self, authority: CustodyAuthority, rent_recipient: str,
    ) -> TransferResult:
        self.calls.append(("close_custody", authority.custody_id, rent_recipient))
        return self._result("close_custody", 0)

    async def release_custody(
        self, authority: CustodyAuthority, refund_to: str, amount: int, rent_recipient: str,
    ) -> TransferResult:
        self.calls.append(("release_custody", authority.custody_id, refund_to, amount, rent_recipient))
        return self._result("release_custody", amount)

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]


class RecordingEventSink:
    """Implements EventSink protocol. Keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[VestingEvent] = []

    async def emit(self, event: VestingEvent) -> None:
        self.events.append(event)

    def of_type(self, cls) -> list:
        return [e for e in self.events if isinstance(e, cls)]


class FailingEventSink:
    """Implements EventSink protocol. Always raises."""

    async def emit(self, event: VestingEvent) -> None:
        raise RuntimeError("sink offline")
