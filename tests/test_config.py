"""Configuration loading from TOML and environment."""

from __future__ import annotations

import pytest

from token_vesting.config import load_config
from token_vesting.models.config import TransferBackend

ENV_VARS = [
    "SECRET", "CUSTODY_SEED", "NETWORK", "HORIZON_URL", "BACKEND", "DB_PATH", "IDENTITY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(f"TOKEN_VESTING_{var}", raising=False)


def test_defaults():
    cfg = load_config()
    assert cfg.backend == TransferBackend.LOCAL
    assert cfg.identity == ""
    assert cfg.db_path.endswith("state.db")
    assert "~" not in cfg.db_path
    assert cfg.stellar.network == "testnet"
    assert cfg.stellar.base_fee == 100


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.toml")
    assert cfg.backend == TransferBackend.LOCAL


def test_toml_sections(tmp_path):
    path = tmp_path / "vesting.toml"
    path.write_text(
        '[service]\n'
        'backend = "stellar"\n'
        'identity = "GCREATOR"\n'
        'log_level = "debug"\n'
        '\n'
        '[storage]\n'
        f'db_path = "{tmp_path / "v.db"}"\n'
        '\n'
        '[stellar]\n'
        'network = "mainnet"\n'
        'horizon_url = "https://horizon.stellar.org"\n'
        'keypair_secret = "SFILE"\n'
        'custody_seed = "seed-from-file"\n'
        'base_fee = 200\n'
    )

    cfg = load_config(path)

    assert cfg.backend == TransferBackend.STELLAR
    assert cfg.identity == "GCREATOR"
    assert cfg.log_level == "debug"
    assert cfg.db_path == str(tmp_path / "v.db")
    assert cfg.stellar.network == "mainnet"
    assert cfg.stellar.horizon_url == "https://horizon.stellar.org"
    assert cfg.stellar.keypair_secret == "SFILE"
    assert cfg.stellar.custody_seed == "seed-from-file"
    assert cfg.stellar.base_fee == 200
    assert cfg.stellar.starting_balance == "2"


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "vesting.toml"
    path.write_text('[service]\nidentity = "from-file"\n\n[stellar]\nkeypair_secret = "SFILE"\n')
    monkeypatch.setenv("TOKEN_VESTING_IDENTITY", "from-env")
    monkeypatch.setenv("TOKEN_VESTING_SECRET", "SENV")
    monkeypatch.setenv("TOKEN_VESTING_BACKEND", "stellar")
    monkeypatch.setenv("TOKEN_VESTING_DB_PATH", ":memory:")

    cfg = load_config(path)

    assert cfg.identity == "from-env"
    assert cfg.stellar.keypair_secret == "SENV"
    assert cfg.backend == TransferBackend.STELLAR
    assert cfg.db_path == ":memory:"


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setenv("TOKEN_VESTING_BACKEND", "paper")
    with pytest.raises(ValueError):
        load_config()
