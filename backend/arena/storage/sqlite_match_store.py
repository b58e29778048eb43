"""SQLite-backed match store."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from arena.logic.exceptions import ConcurrentModificationError
from arena.logic.state import BetTransaction, Match, Wager
from arena.storage.match_store import MatchStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from arena.logic.enums import MatchStatus
    from shared.db.connection import Database

logger = structlog.get_logger()


def _iso(value: datetime) -> str:
    """UTC ISO-8601, so stored timestamps compare correctly as text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


class SqliteMatchStore(MatchStore):
    """SQLite implementation of MatchStore.

    Stores full snapshots as JSON with indexed columns for the conditional
    write (version, round) and for the compliance listing (created_at).
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create(self, match: Match, wager: Wager) -> None:
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    conn.execute(
                        "INSERT INTO matches (id, status, round, version, created_at, updated_at, data) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?)",
                        (
                            match.match_id,
                            match.status.value,
                            match.round,
                            match.version,
                            _iso(match.created_at),
                            _iso(match.updated_at),
                            match.model_dump_json(),
                        ),
                    )
                    conn.execute(
                        "INSERT INTO wagers (match_id, status, created_at, data) VALUES (?, ?, ?, ?)",
                        (wager.match_id, wager.status.value, _iso(wager.created_at), wager.model_dump_json()),
                    )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Match '{match.match_id}' already exists") from exc

    async def get_match(self, match_id: str) -> Match | None:
        row = self._db.connection.execute("SELECT data FROM matches WHERE id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        return Match.model_validate_json(row[0])

    async def get_wager(self, match_id: str) -> Wager | None:
        row = self._db.connection.execute("SELECT data FROM wagers WHERE match_id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        return Wager.model_validate_json(row[0])

    async def get_transaction(self, transaction_id: str) -> BetTransaction | None:
        row = self._db.connection.execute(
            "SELECT data FROM bet_transactions WHERE id = ?",
            (transaction_id,),
        ).fetchone()
        if row is None:
            return None
        return BetTransaction.model_validate_json(row[0])

    async def save(
        self,
        match: Match,
        wager: Wager,
        transactions: Iterable[BetTransaction] = (),
        *,
        expected: Match,
    ) -> Match:
        stored = match.model_copy(update={"version": expected.version + 1})
        async with self._lock:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE matches SET status = ?, round = ?, version = ?, updated_at = ?, data = ? "
                    "WHERE id = ? AND version = ? AND round = ?",
                    (
                        stored.status.value,
                        stored.round,
                        stored.version,
                        _iso(stored.updated_at),
                        stored.model_dump_json(),
                        expected.match_id,
                        expected.version,
                        expected.round,
                    ),
                )
                if cursor.rowcount == 0:
                    raise ConcurrentModificationError(
                        f"Match {expected.match_id} changed since version {expected.version}",
                    )
                conn.execute(
                    "UPDATE wagers SET status = ?, data = ? WHERE match_id = ?",
                    (wager.status.value, wager.model_dump_json(), wager.match_id),
                )
                for transaction in transactions:
                    conn.execute(
                        "INSERT INTO bet_transactions (id, match_id, player, status, created_at, data) "
                        "VALUES (?, ?, ?, ?, ?, ?) "
                        "ON CONFLICT (id) DO UPDATE SET status = excluded.status, data = excluded.data",
                        (
                            transaction.transaction_id,
                            transaction.match_id,
                            transaction.player,
                            transaction.status.value,
                            _iso(transaction.created_at),
                            transaction.model_dump_json(),
                        ),
                    )
        return stored

    async def list_matches(self, status: MatchStatus | None = None) -> list[Match]:
        if status is None:
            rows = self._db.connection.execute("SELECT data FROM matches ORDER BY created_at").fetchall()
        else:
            rows = self._db.connection.execute(
                "SELECT data FROM matches WHERE status = ? ORDER BY created_at",
                (status.value,),
            ).fetchall()
        return [Match.model_validate_json(row[0]) for row in rows]

    async def list_wagers_between(self, start: datetime, end: datetime) -> list[Wager]:
        rows = self._db.connection.execute(
            "SELECT data FROM wagers WHERE created_at >= ? AND created_at <= ? ORDER BY created_at",
            (_iso(start), _iso(end)),
        ).fetchall()
        return [Wager.model_validate_json(row[0]) for row in rows]
