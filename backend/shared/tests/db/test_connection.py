"""Tests for the arena schema and Database.transaction()."""

from __future__ import annotations

import sqlite3
import sys
from typing import TYPE_CHECKING

import pytest

from shared.db.connection import Database

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

_ARENA_TABLES = {"players", "ledger_entries", "reward_table", "cards", "matches", "wagers", "bet_transactions"}
_PLAYER_SQL = "INSERT INTO players (username, rank_tier, mana_balance, ret_balance, created_at) VALUES (?, ?, ?, ?, ?)"


@pytest.fixture
def db(tmp_path: Path) -> Iterator[Database]:
    database = Database(tmp_path / "arena.db")
    database.connect()
    yield database
    database.close()


def _rewards(path: Path) -> int:
    other = sqlite3.connect(path)
    try:
        return other.execute("SELECT COUNT(*) FROM reward_table").fetchone()[0]
    finally:
        other.close()


class TestSchema:
    def test_arena_tables_exist(self, db: Database) -> None:
        rows = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        assert _ARENA_TABLES <= {row[0] for row in rows}

    def test_negative_balance_rejected(self, db: Database) -> None:
        with pytest.raises(sqlite3.IntegrityError, match="CHECK"):
            db.connection.execute(_PLAYER_SQL, ("alice", "rookie1", -1, 0, "2025-06-01"))

    def test_usernames_are_case_insensitive(self, db: Database) -> None:
        db.connection.execute(_PLAYER_SQL, ("alice", "rookie1", 10, 0, "2025-06-01"))
        with pytest.raises(sqlite3.IntegrityError):
            db.connection.execute(_PLAYER_SQL, ("ALICE", "rookie1", 10, 0, "2025-06-01"))

    def test_ledger_entry_needs_player(self, db: Database) -> None:
        with pytest.raises(sqlite3.IntegrityError, match="FOREIGN KEY"):
            db.connection.execute(
                "INSERT INTO ledger_entries (username, currency, change, reason, created_at) VALUES (?, ?, ?, ?, ?)",
                ("ghost", "ret", 5, "match reward", "2025-06-01"),
            )

    def test_reconnect_keeps_data(self, tmp_path: Path) -> None:
        database = Database(tmp_path / "arena.db")
        database.connect()
        database.connection.execute("INSERT INTO reward_table (rank_tier, payout) VALUES ('rookie1', 1.5)")
        database.close()
        database.connect()

        assert database.connection.execute("SELECT payout FROM reward_table").fetchone() == (1.5,)
        database.close()

    def test_closed_database_raises(self, db: Database) -> None:
        db.close()
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.connection


class TestTransaction:
    def test_writes_invisible_to_other_connections_until_commit(self, db: Database, tmp_path: Path) -> None:
        with db.transaction() as conn:
            conn.execute("INSERT INTO reward_table (rank_tier, payout) VALUES ('rookie1', 1.5)")
            assert _rewards(tmp_path / "arena.db") == 0

        assert _rewards(tmp_path / "arena.db") == 1

    def test_rolls_back_every_statement_on_error(self, db: Database) -> None:
        with pytest.raises(RuntimeError, match="boom"), db.transaction() as conn:
            conn.execute(_PLAYER_SQL, ("alice", "rookie1", 10, 0, "2025-06-01"))
            conn.execute("UPDATE players SET mana_balance = mana_balance - 5 WHERE username = 'alice'")
            raise RuntimeError("boom")

        assert db.connection.execute("SELECT COUNT(*) FROM players").fetchone() == (0,)

    def test_failed_conditional_update_leaves_balance(self, db: Database) -> None:
        db.connection.execute(_PLAYER_SQL, ("alice", "rookie1", 10, 0, "2025-06-01"))
        with db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE players SET mana_balance = mana_balance - ? WHERE username = ? AND mana_balance >= ?",
                (30, "alice", 30),
            )
            assert cursor.rowcount == 0

        assert db.connection.execute("SELECT mana_balance FROM players").fetchone() == (10,)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
class TestPermissions:
    def test_database_and_wal_files_are_private(self, db: Database, tmp_path: Path) -> None:
        for suffix in ("", "-wal"):
            path = tmp_path / f"arena.db{suffix}"
            if path.exists():
                assert path.stat().st_mode & 0o777 == 0o600
