"""Vesting error taxonomy.

Codes follow the on-chain program's error enum (Anchor numbers custom
errors from 6000 in declaration order); codes past ``AlreadyRevoked`` are
local to this package.
"""

from __future__ import annotations

from enum import IntEnum


class VestingErrorCode(IntEnum):
    InvalidTimeRange = 6000
    CliffNotReached = 6001
    NothingToClaim = 6002
    MathOverflow = 6003
    InvalidCliff = 6004
    InvalidInterval = 6005
    NotRevocable = 6006
    VestingRevoked = 6007
    TokenMintMismatch = 6008
    AlreadyRevoked = 6009
    # Local additions
    InvalidAmount = 6100
    InvalidName = 6101
    ScheduleExists = 6102
    ScheduleNotFound = 6103
    Unauthorized = 6104
    TransferFailed = 6105


class VestingError(Exception):
    """Base class for every error raised by the vesting engine."""

    code: VestingErrorCode
    default_message: str = "Vesting error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.message} (code {int(self.code)})"


class ValidationError(VestingError):
    """Bad creation parameters. Raised before any mutation or transfer."""


class PreconditionError(VestingError):
    """State or time does not allow the requested transition."""


class ArithmeticContractError(VestingError):
    """An invariant breach detected by checked arithmetic. Never retried."""


# ── Validation ───────────────────────────────────────────


class InvalidTimeRange(ValidationError):
    code = VestingErrorCode.InvalidTimeRange
    default_message = "Invalid time range."


class InvalidCliff(ValidationError):
    code = VestingErrorCode.InvalidCliff
    default_message = "Cliff percentage must be between 0 and 100."


class InvalidInterval(ValidationError):
    code = VestingErrorCode.InvalidInterval
    default_message = "Payment interval must be positive."


class InvalidAmount(ValidationError):
    code = VestingErrorCode.InvalidAmount
    default_message = "Amount must be an unsigned 64-bit integer."


class InvalidName(ValidationError):
    code = VestingErrorCode.InvalidName
    default_message = "Name must be 1 to 32 bytes of UTF-8."


# ── Preconditions ────────────────────────────────────────


class CliffNotReached(PreconditionError):
    code = VestingErrorCode.CliffNotReached
    default_message = "Cliff not reached."


class NothingToClaim(PreconditionError):
    code = VestingErrorCode.NothingToClaim
    default_message = "Nothing to claim."


class VestingRevoked(PreconditionError):
    code = VestingErrorCode.VestingRevoked
    default_message = "Vesting has been revoked."


class NotRevocable(PreconditionError):
    code = VestingErrorCode.NotRevocable
    default_message = "Vesting is not revocable."


class AlreadyRevoked(PreconditionError):
    code = VestingErrorCode.AlreadyRevoked
    default_message = "Vesting has already been revoked."


class TokenMintMismatch(PreconditionError):
    code = VestingErrorCode.TokenMintMismatch
    default_message = "Transfer asset does not match the custody balance's asset."


class ScheduleExists(PreconditionError):
    code = VestingErrorCode.ScheduleExists
    default_message = "A schedule with this beneficiary, asset and name already exists."


class ScheduleNotFound(PreconditionError):
    code = VestingErrorCode.ScheduleNotFound
    default_message = "Vesting schedule not found."


class Unauthorized(PreconditionError):
    code = VestingErrorCode.Unauthorized
    default_message = "Caller is not authorized for this operation."


class TransferFailed(PreconditionError):
    code = VestingErrorCode.TransferFailed
    default_message = "Token transfer failed."


# ── Arithmetic ───────────────────────────────────────────


class MathOverflow(ArithmeticContractError):
    code = VestingErrorCode.MathOverflow
    default_message = "Math overflow."
