"""Local token ledger - a SQLite TransferService for offline use.

Balances live in the schedule database and every write goes through the
store's transaction, so a claim's ledger movement and its schedule update
commit or roll back together.
"""

from __future__ import annotations

import logging
import uuid

from token_vesting.errors import InvalidAmount, TokenMintMismatch
from token_vesting.engine.checked import is_u64
from token_vesting.models.records import TransferResult
from token_vesting.models.schedule import CustodyAuthority
from token_vesting.storage.sqlite import SQLiteScheduleStore

log = logging.getLogger(__name__)

LEDGER_SCHEMA = """
-- Holder balances per asset
CREATE TABLE IF NOT EXISTS balances (
    holder TEXT NOT NULL,
    asset TEXT NOT NULL,
    amount TEXT NOT NULL DEFAULT '0',
    PRIMARY KEY (holder, asset)
);

-- Custody balances owned by schedules
CREATE TABLE IF NOT EXISTS custody_accounts (
    custody_id TEXT PRIMARY KEY,
    asset TEXT NOT NULL,
    creator TEXT NOT NULL,
    closed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class LocalTokenLedger:
    """Implements TransferService against tables in the schedule database."""

    def __init__(self, store: SQLiteScheduleStore) -> None:
        self._store = store

    async def initialize(self) -> None:
        await self._store.db.executescript(LEDGER_SCHEMA)
        await self._store.db.commit()

    # ── Balances ───────────────────────────────────────────

    async def balance_of(self, holder: str, asset: str) -> int:
        async with self._store.transaction():
            return await self._balance(holder, asset)

    async def mint(self, holder: str, asset: str, amount: int) -> int:
        """Credit ``amount`` units out of thin air. Returns the new balance."""
        if not is_u64(amount):
            raise InvalidAmount()
        async with self._store.transaction():
            balance = await self._balance(holder, asset) + amount
            if not is_u64(balance):
                raise InvalidAmount("Balance would exceed the unsigned 64-bit range.")
            await self._set_balance(holder, asset, balance)
        log.info("Minted %d %s to %s", amount, asset, holder)
        return balance

    async def _balance(self, holder: str, asset: str) -> int:
        async with self._store.db.execute(
            "SELECT amount FROM balances WHERE holder=? AND asset=?", (holder, asset)
        ) as cur:
            row = await cur.fetchone()
            return int(row["amount"]) if row else 0

    async def _set_balance(self, holder: str, asset: str, amount: int) -> None:
        await self._store.db.execute(
            "INSERT INTO balances (holder, asset, amount) VALUES (?, ?, ?)"
            " ON CONFLICT(holder, asset) DO UPDATE SET amount=excluded.amount",
            (holder, asset, str(amount)),
        )

    def _refuse(self, src: str, asset: str, amount: int, src_balance: int, dst_balance: int) -> TransferResult | None:
        """Failure result if ``amount`` cannot move, else None."""
        if src_balance < amount:
            log.warning(
                "Insufficient %s balance for %s: have %d, need %d",
                asset, src, src_balance, amount,
            )
            return TransferResult(success=False, amount=amount, error="insufficient_funds")
        if not is_u64(dst_balance + amount):
            return TransferResult(success=False, amount=amount, error="balance_overflow")
        return None

    async def _move(self, src: str, dst: str, asset: str, amount: int) -> TransferResult:
        src_balance = await self._balance(src, asset)
        dst_balance = await self._balance(dst, asset)
        refused = self._refuse(src, asset, amount, src_balance, dst_balance)
        if refused is not None:
            return refused
        await self._set_balance(src, asset, src_balance - amount)
        await self._set_balance(dst, asset, dst_balance + amount)
        return TransferResult(success=True, amount=amount, reference=uuid.uuid4().hex)

    # ── Custody ────────────────────────────────────────────

    async def _custody(self, custody_id: str):
        async with self._store.db.execute(
            "SELECT * FROM custody_accounts WHERE custody_id=?", (custody_id,)
        ) as cur:
            return await cur.fetchone()

    async def _close(self, custody_id: str) -> None:
        await self._store.db.execute(
            "UPDATE custody_accounts SET closed=1 WHERE custody_id=?", (custody_id,)
        )

    async def open_custody(
        self, authority: CustodyAuthority, funder: str, amount: int, asset: str,
    ) -> TransferResult:
        if asset != authority.asset:
            raise TokenMintMismatch()
        async with self._store.transaction():
            if await self._custody(authority.custody_id) is not None:
                return TransferResult(success=False, error="custody_exists")
            # All checks before the INSERT so a refusal leaves no custody row.
            refused = self._refuse(
                funder, asset, amount,
                await self._balance(funder, asset),
                await self._balance(authority.custody_id, asset),
            )
            if refused is not None:
                return refused
            await self._store.db.execute(
                "INSERT INTO custody_accounts (custody_id, asset, creator) VALUES (?, ?, ?)",
                (authority.custody_id, asset, authority.creator),
            )
            return await self._move(funder, authority.custody_id, asset, amount)

    async def transfer(
        self, authority: CustodyAuthority, to: str, amount: int, asset: str,
    ) -> TransferResult:
        async with self._store.transaction():
            custody = await self._custody(authority.custody_id)
            if custody is None or custody["closed"]:
                return TransferResult(success=False, amount=amount, error="custody_closed")
            if asset != custody["asset"]:
                raise TokenMintMismatch()
            return await self._move(authority.custody_id, to, asset, amount)

    async def close_custody(
        self, authority: CustodyAuthority, rent_recipient: str,
    ) -> TransferResult:
        async with self._store.transaction():
            custody = await self._custody(authority.custody_id)
            if custody is None or custody["closed"]:
                return TransferResult(success=False, error="custody_closed")
            residual = await self._balance(authority.custody_id, custody["asset"])
            if residual:
                return TransferResult(success=False, amount=residual, error="custody_not_empty")
            await self._close(authority.custody_id)
        log.debug("Closed custody %s (rent to %s)", authority.custody_id, rent_recipient)
        return TransferResult(success=True, reference=authority.custody_id)

    async def release_custody(
        self, authority: CustodyAuthority, refund_to: str, amount: int, rent_recipient: str,
    ) -> TransferResult:
        """Refund ``amount`` and close custody; refuses up front unless both can succeed."""
        async with self._store.transaction():
            custody = await self._custody(authority.custody_id)
            if custody is None or custody["closed"]:
                return TransferResult(success=False, amount=amount, error="custody_closed")
            asset = custody["asset"]
            held = await self._balance(authority.custody_id, asset)
            if held != amount:
                # Anything left behind would keep the custody from closing.
                error = "insufficient_funds" if held < amount else "custody_not_empty"
                return TransferResult(success=False, amount=amount, error=error)
            refused = self._refuse(
                authority.custody_id, asset, amount, held, await self._balance(refund_to, asset),
            )
            if refused is not None:
                return refused
            moved = await self._move(authority.custody_id, refund_to, asset, amount)
            await self._close(authority.custody_id)
        log.debug(
            "Released custody %s: %d %s to %s (rent to %s)",
            authority.custody_id, amount, asset, refund_to, rent_recipient,
        )
        return TransferResult(success=True, amount=amount, reference=moved.reference)
