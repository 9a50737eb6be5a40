"""Configuration models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TransferBackend(str, Enum):
    """Which transfer collaborator moves funds."""

    LOCAL = "local"  # SQLite ledger sharing the schedule database
    STELLAR = "stellar"  # Stellar payments via Horizon


@dataclass
class StellarConfig:
    """Stellar custody backend settings."""

    network: str = "testnet"
    horizon_url: str = "https://horizon-testnet.stellar.org"
    network_passphrase: str = ""  # derived from network when empty
    keypair_secret: str = ""  # operator/creator key, env TOKEN_VESTING_SECRET
    custody_seed: str = ""  # env TOKEN_VESTING_CUSTODY_SEED
    base_fee: int = 100  # stroops per operation
    starting_balance: str = "2"  # XLM reserve for a new custody account


@dataclass
class VestingConfig:
    """Complete service configuration."""

    # Service
    backend: TransferBackend = TransferBackend.LOCAL
    identity: str = ""  # caller identity for the local backend
    log_level: str = "info"

    # Storage
    db_path: str = "~/.token_vesting/state.db"

    # Stellar
    stellar: StellarConfig = field(default_factory=StellarConfig)
