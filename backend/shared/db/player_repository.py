"""SQLite-backed player ledger repository."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import Currency, LedgerEntry, PlayerAccount
from shared.dal.player_repository import PlayerRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

# Whitelisted column per currency; never interpolate caller input into SQL.
_BALANCE_COLUMNS: dict[Currency, str] = {
    Currency.MANA: "mana_balance",
    Currency.RET: "ret_balance",
}

_PLAYER_COLUMNS = "username, rank_tier, xp, wins, mana_balance, ret_balance, created_at"


def _row_to_player(row: tuple) -> PlayerAccount:
    return PlayerAccount(
        username=row[0],
        rank_tier=row[1],
        xp=row[2],
        wins=row[3],
        mana_balance=row[4],
        ret_balance=row[5],
        created_at=datetime.fromisoformat(row[6]),
    )


class SqlitePlayerRepository(PlayerRepository):
    """SQLite implementation of PlayerRepository.

    Debits are a single conditional UPDATE (``balance >= amount``) followed by
    the history insert inside one IMMEDIATE transaction, so the balance check
    and the decrement can never interleave with another writer. The asyncio
    lock keeps coroutines sharing this connection from nesting transactions.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_player(self, player: PlayerAccount) -> None:
        """Insert a player. Raises ValueError on duplicate username."""
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    conn.execute(
                        f"INSERT INTO players ({_PLAYER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                        (
                            player.username,
                            player.rank_tier,
                            player.xp,
                            player.wins,
                            player.mana_balance,
                            player.ret_balance,
                            player.created_at.isoformat(),
                        ),
                    )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Username '{player.username}' already taken") from exc

    async def get_player(self, username: str) -> PlayerAccount | None:
        """Look up a player by username (case-insensitive)."""
        row = self._db.connection.execute(
            f"SELECT {_PLAYER_COLUMNS} FROM players WHERE username = ?",  # noqa: S608
            (username,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_player(row)

    async def list_players(self) -> list[PlayerAccount]:
        rows = self._db.connection.execute(
            f"SELECT {_PLAYER_COLUMNS} FROM players ORDER BY username",  # noqa: S608
        ).fetchall()
        return [_row_to_player(row) for row in rows]

    async def deduct_balance(
        self,
        username: str,
        amount: float,
        currency: Currency,
        reason: str,
        match_id: str | None = None,
    ) -> LedgerEntry | None:
        if amount < 0:
            raise ValueError(f"Deduction amount must be non-negative, got {amount}")
        column = _BALANCE_COLUMNS[currency]
        entry = LedgerEntry(username=username, currency=currency, change=-amount, reason=reason, match_id=match_id)
        async with self._lock:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE players SET {column} = {column} - ? WHERE username = ? AND {column} >= ?",  # noqa: S608
                    (amount, username, amount),
                )
                if cursor.rowcount == 0:
                    return None
                self._insert_entry(conn, entry)
        return entry

    async def credit_balance(
        self,
        username: str,
        amount: float,
        currency: Currency,
        reason: str,
        match_id: str | None = None,
    ) -> LedgerEntry | None:
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        column = _BALANCE_COLUMNS[currency]
        entry = LedgerEntry(username=username, currency=currency, change=amount, reason=reason, match_id=match_id)
        async with self._lock:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE players SET {column} = {column} + ? WHERE username = ?",  # noqa: S608
                    (amount, username),
                )
                if cursor.rowcount == 0:
                    return None
                self._insert_entry(conn, entry)
        return entry

    async def set_balance(self, username: str, amount: float, currency: Currency, reason: str) -> LedgerEntry | None:
        """Overwrite a balance (daily reset), recording the signed difference in history."""
        if amount < 0:
            raise ValueError(f"Balance must be non-negative, got {amount}")
        column = _BALANCE_COLUMNS[currency]
        async with self._lock:
            with self._db.transaction() as conn:
                row = conn.execute(
                    f"SELECT {column} FROM players WHERE username = ?",  # noqa: S608
                    (username,),
                ).fetchone()
                if row is None:
                    return None
                entry = LedgerEntry(username=username, currency=currency, change=amount - row[0], reason=reason)
                conn.execute(
                    f"UPDATE players SET {column} = ? WHERE username = ?",  # noqa: S608
                    (amount, username),
                )
                self._insert_entry(conn, entry)
        return entry

    async def adjust_xp(self, username: str, delta: int, *, add_win: bool = False) -> int | None:
        async with self._lock:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE players SET xp = MAX(0, xp + ?), wins = wins + ? WHERE username = ?",
                    (delta, 1 if add_win else 0, username),
                )
                if cursor.rowcount == 0:
                    return None
                row = conn.execute("SELECT xp FROM players WHERE username = ?", (username,)).fetchone()
        return row[0]

    async def get_history(self, username: str, currency: Currency) -> list[LedgerEntry]:
        """Return a player's history for one currency, oldest first."""
        rows = self._db.connection.execute(
            "SELECT username, currency, change, reason, match_id, created_at FROM ledger_entries "
            "WHERE username = ? AND currency = ? ORDER BY id",
            (username, currency.value),
        ).fetchall()
        return [
            LedgerEntry(
                username=row[0],
                currency=Currency(row[1]),
                change=row[2],
                reason=row[3],
                match_id=row[4],
                created_at=datetime.fromisoformat(row[5]),
            )
            for row in rows
        ]

    @staticmethod
    def _insert_entry(conn: sqlite3.Connection, entry: LedgerEntry) -> None:
        conn.execute(
            "INSERT INTO ledger_entries (username, currency, change, reason, match_id, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                entry.username,
                entry.currency.value,
                entry.change,
                entry.reason,
                entry.match_id,
                entry.created_at.astimezone(UTC).isoformat(),
            ),
        )
