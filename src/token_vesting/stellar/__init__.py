"""Stellar integration components."""

from token_vesting.stellar.custody import StellarTransferService

__all__ = ["StellarTransferService"]
