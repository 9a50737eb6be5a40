"""token_vesting - token release schedules with cliff, intervals and revocation."""

__version__ = "0.1.0"
