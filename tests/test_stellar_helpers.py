"""Stellar backend helpers that run without a network."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from stellar_sdk import Keypair

from token_vesting.engine.checked import I64_MAX
from token_vesting.models.config import StellarConfig
from token_vesting.models.schedule import CustodyAuthority
from token_vesting.stellar.custody import (
    StellarTransferService,
    _classify_error,
    derive_custody_keypair,
    parse_asset,
    to_stellar_amount,
)
from tests.factories import make_schedule


@pytest.mark.parametrize(
    "units, expected",
    [(0, "0.0000000"), (1, "0.0000001"), (10_000_000, "1.0000000"), (123_456_789, "12.3456789")],
)
def test_to_stellar_amount(units, expected):
    assert to_stellar_amount(units) == expected


@pytest.mark.parametrize("units", [-1, I64_MAX + 1])
def test_to_stellar_amount_out_of_range(units):
    with pytest.raises(ValueError):
        to_stellar_amount(units)


def test_parse_asset():
    issuer = Keypair.random().public_key
    assert parse_asset("native").is_native()
    assert parse_asset("XLM").is_native()

    asset = parse_asset(f"LUM:{issuer}")
    assert (asset.code, asset.issuer) == ("LUM", issuer)

    with pytest.raises(ValueError):
        parse_asset("LUM")


def test_custody_keypair_is_deterministic():
    a = CustodyAuthority.for_schedule(make_schedule(name="a"))
    b = CustodyAuthority.for_schedule(make_schedule(name="b"))

    first = derive_custody_keypair("seed", a.custody_id)
    assert first.public_key == derive_custody_keypair("seed", a.custody_id).public_key
    assert first.public_key != derive_custody_keypair("seed", b.custody_id).public_key
    assert first.public_key != derive_custody_keypair("other", a.custody_id).public_key


def test_classify_error_prefers_operation_code():
    exc = SimpleNamespace(
        extras={"result_codes": {"transaction": "tx_failed", "operations": ["op_success", "op_underfunded"]}},
        title="Transaction Failed",
    )
    assert _classify_error(exc) == "op_underfunded"
    assert _classify_error(SimpleNamespace(extras=None, title="Timeout")) == "Timeout"


def test_service_requires_credentials():
    with pytest.raises(ValueError):
        StellarTransferService(StellarConfig())
    with pytest.raises(ValueError):
        StellarTransferService(StellarConfig(keypair_secret=Keypair.random().secret))


async def test_open_custody_rejects_foreign_funder():
    operator = Keypair.random()
    svc = StellarTransferService(
        StellarConfig(keypair_secret=operator.secret, custody_seed="seed")
    )
    authority = CustodyAuthority.for_schedule(make_schedule())

    result = await svc.open_custody(authority, Keypair.random().public_key, 10, "native")

    assert not result.success
    assert result.error == "funder_not_operator"
    assert svc.operator_address == operator.public_key
    assert svc.custody_address(authority) == derive_custody_keypair("seed", authority.custody_id).public_key
