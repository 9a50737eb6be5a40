"""Caller checks for the dispatch layer (beneficiary claims, creator revokes)."""

from __future__ import annotations

import logging

from token_vesting.errors import Unauthorized
from token_vesting.models.schedule import VestingSchedule

log = logging.getLogger(__name__)


class FieldSignerVerifier:
    """Implements SignerVerifier by comparing caller to schedule fields."""

    def verify_claimant(self, schedule: VestingSchedule, caller: str) -> None:
        if caller != schedule.beneficiary:
            log.warning("Claim on %s rejected for caller %s", schedule.key, caller)
            raise Unauthorized(f"Only the beneficiary may claim from {schedule.key}.")

    def verify_revoker(self, schedule: VestingSchedule, caller: str) -> None:
        if caller != schedule.creator:
            log.warning("Revoke on %s rejected for caller %s", schedule.key, caller)
            raise Unauthorized(f"Only the creator may revoke {schedule.key}.")
