"""Protocol interfaces for all token_vesting collaborators."""

from token_vesting.interfaces.authority import SignerVerifier
from token_vesting.interfaces.clock import Clock, FixedClock, SystemClock
from token_vesting.interfaces.events import EventSink
from token_vesting.interfaces.store import ScheduleStore
from token_vesting.interfaces.transfer import TransferService

__all__ = [
    "SignerVerifier",
    "Clock", "FixedClock", "SystemClock",
    "EventSink",
    "ScheduleStore",
    "TransferService",
]
