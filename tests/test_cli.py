"""CLI commands against a temporary local-ledger database."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from token_vesting.cli import TIMESTAMP, cli
from tests.factories import ASSET, BENEFICIARY, CREATOR, NAME, OUTSIDER

SCHEDULE = ["--beneficiary", BENEFICIARY, "--asset", ASSET, "--name", NAME]


@pytest.fixture
def invoke(tmp_path):
    runner = CliRunner()
    env = {
        "TOKEN_VESTING_DB_PATH": str(tmp_path / "state.db"),
        "TOKEN_VESTING_BACKEND": "local",
        "TOKEN_VESTING_IDENTITY": "",
    }

    def _invoke(*args, caller=None, input=None):
        prefix = ["--as", caller] if caller else []
        return runner.invoke(cli, [*prefix, *args], env=env, input=input)

    return _invoke


@pytest.fixture
def funded_schedule(invoke):
    assert invoke("mint", "--holder", CREATOR, "--asset", ASSET, "--amount", "5000").exit_code == 0
    result = invoke(
        "init", *SCHEDULE, "--amount", "1000", "--start", "1000", "--end", "2000",
        "--cliff-percentage", "20", "--revocable",
        caller=CREATOR,
    )
    assert result.exit_code == 0, result.output
    return result


def test_init_reports_custody(funded_schedule, invoke):
    assert f"{BENEFICIARY}/{ASSET}/{NAME}" in funded_schedule.output
    assert "custody:" in funded_schedule.output

    result = invoke("balance", "--holder", CREATOR, "--asset", ASSET)
    assert f"{CREATOR}: 4000 {ASSET}" in result.output


def test_estimate_and_claim(funded_schedule, invoke):
    result = invoke("estimate", *SCHEDULE, "--now", "1500")
    assert result.exit_code == 0
    assert result.output.strip().splitlines()[-1] == "600"

    result = invoke("claim", *SCHEDULE, "--now", "1500", caller=BENEFICIARY)
    assert result.exit_code == 0, result.output
    assert "Claimed 600" in result.output

    result = invoke("claim", *SCHEDULE, "--now", "1500", caller=BENEFICIARY)
    assert result.exit_code == 1
    assert "Nothing to claim" in result.output


def test_claim_by_outsider_fails(funded_schedule, invoke):
    result = invoke("claim", *SCHEDULE, "--now", "1500", caller=OUTSIDER)
    assert result.exit_code == 1
    assert "Only the beneficiary" in result.output


def test_revoke(funded_schedule, invoke):
    result = invoke("revoke", *SCHEDULE, "--now", "1500", "--yes", caller=CREATOR)
    assert result.exit_code == 0, result.output
    assert "Returned: 1000" in result.output

    result = invoke("show", *SCHEDULE, "--now", "1600")
    assert "Revoked at:   1500" in result.output
    assert "Claimable:    0" in result.output


def test_revoke_asks_for_confirmation(funded_schedule, invoke):
    result = invoke("revoke", *SCHEDULE, "--now", "1500", caller=CREATOR, input="n\n")
    assert result.exit_code != 0

    result = invoke("estimate", *SCHEDULE, "--now", "1500")
    assert result.output.strip().splitlines()[-1] == "600"


def test_list_and_history(funded_schedule, invoke):
    invoke("claim", *SCHEDULE, "--now", "2000", caller=BENEFICIARY)

    result = invoke("list", "--beneficiary", BENEFICIARY, "--now", "2000")
    assert "[active ]" in result.output
    assert "claimed=1000" in result.output

    result = invoke("history")
    entries = [line for line in result.output.splitlines() if "[vesting_" in line]
    assert "[vesting_claimed]" in entries[0]
    assert "[vesting_initialized]" in entries[1]


def test_invalid_cliff_reports_code(invoke):
    invoke("mint", "--holder", CREATOR, "--asset", ASSET, "--amount", "5000")
    result = invoke(
        "init", *SCHEDULE, "--amount", "10", "--start", "1000", "--end", "2000",
        "--cliff-percentage", "150",
        caller=CREATOR,
    )
    assert result.exit_code == 1
    assert "code 6004" in result.output


def test_init_without_identity(invoke):
    result = invoke("init", *SCHEDULE, "--amount", "10", "--start", "1", "--end", "2")
    assert result.exit_code == 1
    assert "No caller identity" in result.output


def test_empty_list(invoke):
    assert "No schedules." in invoke("list").output


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1700000000", 1_700_000_000),
        ("2025-01-01T00:00:00Z", 1_735_689_600),
        ("2025-01-01T00:00:00", 1_735_689_600),
        ("2025-01-01T01:00:00+01:00", 1_735_689_600),
    ],
)
def test_timestamp_parsing(text, expected):
    assert TIMESTAMP.convert(text, None, None) == expected
