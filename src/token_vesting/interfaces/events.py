"""EventSink protocol - receives notifications of committed transitions."""

from __future__ import annotations

from typing import Protocol

from token_vesting.models.events import VestingEvent


class EventSink(Protocol):
    """Fire-and-forget consumer of vesting notifications."""

    async def emit(self, event: VestingEvent) -> None:
        ...
