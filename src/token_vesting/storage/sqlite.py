"""SQLite implementation of the ScheduleStore protocol."""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from token_vesting.errors import ScheduleExists, ScheduleNotFound
from token_vesting.models.records import ActivityRecord
from token_vesting.models.schedule import ScheduleKey, VestingSchedule

# Amounts are u64 and do not fit SQLite's signed INTEGER, so they are
# stored as decimal TEXT.
SCHEMA = """
-- Vesting schedules, keyed by beneficiary + asset + name
CREATE TABLE IF NOT EXISTS schedules (
    beneficiary TEXT NOT NULL,
    asset TEXT NOT NULL,
    name TEXT NOT NULL,
    creator TEXT NOT NULL,
    start_time INTEGER NOT NULL,
    end_time INTEGER NOT NULL,
    total_amount TEXT NOT NULL,
    claimed_amount TEXT NOT NULL DEFAULT '0',
    cliff_percentage INTEGER NOT NULL,
    payment_interval INTEGER NOT NULL DEFAULT 0,
    revocable INTEGER NOT NULL,
    revoked_at INTEGER NOT NULL DEFAULT 0,
    last_claimed_at INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (beneficiary, asset, name)
);
CREATE INDEX IF NOT EXISTS idx_schedules_creator ON schedules(creator);

-- Audit log of committed transitions
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    beneficiary TEXT,
    asset TEXT,
    name TEXT,
    amount TEXT,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteScheduleStore:
    """SQLite-backed implementation of the ScheduleStore protocol.

    One connection is shared by every caller, so access is serialised: the
    task that opens a transaction owns the connection until it commits or
    rolls back, and other tasks (readers included) wait for it. Nested
    ``transaction()`` blocks in the owning task join the outer one.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Transactions ───────────────────────────────────────

    def _owns_connection(self) -> bool:
        return self._owner is not None and self._owner is asyncio.current_task()

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[bool]:
        """Hold the connection. Yields True if this call took ownership."""
        if self._owns_connection():
            yield False
            return
        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                yield True
            finally:
                self._owner = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._guard() as outermost:
            if not outermost:
                yield
                return
            try:
                yield
            except BaseException:
                await self.db.rollback()
                raise
            await self.db.commit()

    # ── Schedules ──────────────────────────────────────────

    async def insert_schedule(self, schedule: VestingSchedule) -> None:
        now = _now()
        async with self.transaction():
            try:
                await self.db.execute(
                    "INSERT INTO schedules"
                    " (beneficiary, asset, name, creator, start_time, end_time,"
                    "  total_amount, claimed_amount, cliff_percentage, payment_interval,"
                    "  revocable, revoked_at, last_claimed_at, created_at, updated_at)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        schedule.beneficiary, schedule.asset, schedule.name,
                        schedule.creator, schedule.start_time, schedule.end_time,
                        str(schedule.total_amount), str(schedule.claimed_amount),
                        schedule.cliff_percentage, schedule.payment_interval,
                        int(schedule.revocable), schedule.revoked_at,
                        schedule.last_claimed_at, now, now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ScheduleExists(
                    f"Schedule {schedule.key} already exists."
                ) from exc

    async def get_schedule(self, key: ScheduleKey) -> VestingSchedule | None:
        async with self._guard():
            async with self.db.execute(
                "SELECT * FROM schedules WHERE beneficiary=? AND asset=? AND name=?",
                (key.beneficiary, key.asset, key.name),
            ) as cur:
                row = await cur.fetchone()
                return _row_to_schedule(row) if row else None

    async def list_schedules(
        self, beneficiary: str | None = None, creator: str | None = None,
    ) -> list[VestingSchedule]:
        clauses = []
        params: list = []
        if beneficiary is not None:
            clauses.append("beneficiary=?")
            params.append(beneficiary)
        if creator is not None:
            clauses.append("creator=?")
            params.append(creator)
        sql = "SELECT * FROM schedules"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at, beneficiary, asset, name"
        async with self._guard():
            async with self.db.execute(sql, params) as cur:
                return [_row_to_schedule(row) async for row in cur]

    async def apply_claim(
        self, key: ScheduleKey, claimed_amount: int, last_claimed_at: int,
    ) -> None:
        async with self.transaction():
            cur = await self.db.execute(
                "UPDATE schedules SET claimed_amount=?, last_claimed_at=?, updated_at=?"
                " WHERE beneficiary=? AND asset=? AND name=? AND revoked_at=0",
                (
                    str(claimed_amount), last_claimed_at, _now(),
                    key.beneficiary, key.asset, key.name,
                ),
            )
            if cur.rowcount != 1:
                raise ScheduleNotFound(f"No claimable schedule {key}.")

    async def apply_revoke(self, key: ScheduleKey, revoked_at: int) -> None:
        async with self.transaction():
            cur = await self.db.execute(
                "UPDATE schedules SET revoked_at=?, updated_at=?"
                " WHERE beneficiary=? AND asset=? AND name=? AND revoked_at=0",
                (revoked_at, _now(), key.beneficiary, key.asset, key.name),
            )
            if cur.rowcount != 1:
                raise ScheduleNotFound(f"No unrevoked schedule {key}.")

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        key: ScheduleKey | None = None,
        amount: int | None = None,
    ) -> None:
        async with self.transaction():
            await self.db.execute(
                "INSERT INTO activity_log"
                " (event_type, beneficiary, asset, name, amount, message, created_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    event_type,
                    key.beneficiary if key else None,
                    key.asset if key else None,
                    key.name if key else None,
                    str(amount) if amount is not None else None,
                    message,
                    _now(),
                ),
            )

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        async with self._guard():
            async with self.db.execute(
                "SELECT * FROM activity_log ORDER BY id DESC LIMIT ?", (limit,)
            ) as cur:
                return [
                    ActivityRecord(
                        id=row["id"],
                        event_type=row["event_type"],
                        beneficiary=row["beneficiary"],
                        asset=row["asset"],
                        name=row["name"],
                        amount=int(row["amount"]) if row["amount"] is not None else None,
                        message=row["message"],
                        created_at=row["created_at"],
                    )
                    async for row in cur
                ]


# ── Row converters ─────────────────────────────────────────


def _row_to_schedule(row: aiosqlite.Row) -> VestingSchedule:
    return VestingSchedule(
        beneficiary=row["beneficiary"],
        creator=row["creator"],
        asset=row["asset"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        total_amount=int(row["total_amount"]),
        claimed_amount=int(row["claimed_amount"]),
        cliff_percentage=row["cliff_percentage"],
        payment_interval=row["payment_interval"],
        name=row["name"],
        revocable=bool(row["revocable"]),
        revoked_at=row["revoked_at"],
        last_claimed_at=row["last_claimed_at"],
    )
