"""Event sinks for vesting notifications."""

from __future__ import annotations

import logging

from token_vesting.interfaces.events import EventSink
from token_vesting.interfaces.store import ScheduleStore
from token_vesting.models.events import (
    VestingClaimed,
    VestingEvent,
    VestingInitialized,
    VestingRevoked,
)

log = logging.getLogger(__name__)


def describe(event: VestingEvent) -> tuple[str, str, int]:
    """(event_type, message, amount) for an event."""
    if isinstance(event, VestingInitialized):
        return (
            "vesting_initialized",
            f"Schedule {event.key} created by {event.creator}: {event.total_amount} units",
            event.total_amount,
        )
    if isinstance(event, VestingClaimed):
        return (
            "vesting_claimed",
            f"Claimed {event.amount} units from {event.key} at t={event.time}",
            event.amount,
        )
    if isinstance(event, VestingRevoked):
        return (
            "vesting_revoked",
            f"Revoked {event.key} at t={event.timestamp}: {event.unvested} units returned",
            event.unvested,
        )
    raise TypeError(f"unknown event {event!r}")


class LoggingEventSink:
    """Writes every notification to the log."""

    async def emit(self, event: VestingEvent) -> None:
        event_type, message, _ = describe(event)
        log.info("%s: %s", event_type, message)


class AuditLogEventSink:
    """Persists notifications to the store's activity log."""

    def __init__(self, store: ScheduleStore) -> None:
        self._store = store

    async def emit(self, event: VestingEvent) -> None:
        event_type, message, amount = describe(event)
        await self._store.log_activity(event_type, message, key=event.key, amount=amount)


class FanoutEventSink:
    """Delivers each notification to several sinks; one failing does not stop the rest."""

    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = list(sinks)

    async def emit(self, event: VestingEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.emit(event)
            except Exception as exc:
                log.warning("Event sink %s failed: %s", type(sink).__name__, exc)
