"""Transfer service backed by the local SQLite ledger."""

from token_vesting.ledger.local import LocalTokenLedger

__all__ = ["LocalTokenLedger"]
