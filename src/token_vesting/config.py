"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from token_vesting.models.config import StellarConfig, TransferBackend, VestingConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "TOKEN_VESTING_",
) -> VestingConfig:
    """Load service configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (TOKEN_VESTING_SECRET, etc.)
        2. TOML config file
        3. Defaults from VestingConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = VestingConfig()

    # ── Service section ────────────────────────────────────
    service = raw.get("service", {})
    if backend := service.get("backend"):
        cfg.backend = TransferBackend(backend)
    if v := service.get("identity"):
        cfg.identity = str(v)
    if v := service.get("log_level"):
        cfg.log_level = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Stellar section ────────────────────────────────────
    stellar_raw = raw.get("stellar", {})
    defaults = StellarConfig()
    cfg.stellar = StellarConfig(
        network=str(stellar_raw.get("network", defaults.network)),
        horizon_url=str(stellar_raw.get("horizon_url", defaults.horizon_url)),
        network_passphrase=str(stellar_raw.get("network_passphrase", defaults.network_passphrase)),
        keypair_secret=str(stellar_raw.get("keypair_secret", defaults.keypair_secret)),
        custody_seed=str(stellar_raw.get("custody_seed", defaults.custody_seed)),
        base_fee=int(stellar_raw.get("base_fee", defaults.base_fee)),
        starting_balance=str(stellar_raw.get("starting_balance", defaults.starting_balance)),
    )

    # ── Environment variable overrides (highest priority) ──
    if secret := os.environ.get(f"{env_prefix}SECRET"):
        cfg.stellar.keypair_secret = secret
    if seed := os.environ.get(f"{env_prefix}CUSTODY_SEED"):
        cfg.stellar.custody_seed = seed
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.stellar.network = net
    if url := os.environ.get(f"{env_prefix}HORIZON_URL"):
        cfg.stellar.horizon_url = url
    if backend_env := os.environ.get(f"{env_prefix}BACKEND"):
        cfg.backend = TransferBackend(backend_env)
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if identity := os.environ.get(f"{env_prefix}IDENTITY"):
        cfg.identity = identity

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg
