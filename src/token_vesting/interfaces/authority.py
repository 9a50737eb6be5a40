"""SignerVerifier protocol - confirms who may invoke which operation."""

from __future__ import annotations

from typing import Protocol

from token_vesting.models.schedule import VestingSchedule


class SignerVerifier(Protocol):
    """Checks caller identity against schedule relationships."""

    def verify_claimant(self, schedule: VestingSchedule, caller: str) -> None:
        """Raise Unauthorized unless ``caller`` may claim from ``schedule``."""
        ...

    def verify_revoker(self, schedule: VestingSchedule, caller: str) -> None:
        """Raise Unauthorized unless ``caller`` may revoke ``schedule``."""
        ...
