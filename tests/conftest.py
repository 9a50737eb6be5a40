"""Shared fixtures for token_vesting tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from token_vesting.auth import FieldSignerVerifier
from token_vesting.ledger.local import LocalTokenLedger
from token_vesting.service import VestingService
from token_vesting.storage.sqlite import SQLiteScheduleStore

from tests.factories import ASSET, CREATOR, make_create_kwargs
from tests.mocks import MockTransferService, RecordingEventSink

CREATOR_FUNDS = 1_000_000


def pytest_configure(config):
    """Add backend info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Schedule store"] = "SQLite (:memory:)"
    meta["Transfer backend"] = "LocalTokenLedger / MockTransferService"


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteScheduleStore."""
    s = SQLiteScheduleStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
async def ledger(store):
    """Local ledger with the creator funded."""
    lg = LocalTokenLedger(store)
    await lg.initialize()
    await lg.mint(CREATOR, ASSET, CREATOR_FUNDS)
    return lg


@pytest.fixture
def sink():
    return RecordingEventSink()


@pytest.fixture
def mock_transfer():
    return MockTransferService(succeed=True)


@pytest.fixture
def service(store, ledger, sink):
    """VestingService over the local ledger."""
    return VestingService(store, ledger, events=sink, verifier=FieldSignerVerifier())


@pytest.fixture
def mock_service(store, mock_transfer, sink):
    """VestingService over a mock transfer collaborator."""
    return VestingService(store, mock_transfer, events=sink)


@pytest.fixture
async def schedule(service):
    """Default schedule: 1000 units, 20% cliff, t=[1000, 2000], continuous, revocable."""
    return await service.create(**make_create_kwargs())
