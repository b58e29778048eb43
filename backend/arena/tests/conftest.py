"""Fixtures for arena tests: a temporary database, a seeded ledger and a wired service."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

import pytest

from arena.logic.cards import InMemoryCardCatalog
from arena.logic.economy import DEFAULT_REWARD_TABLE
from arena.logic.ledger import EconomyLedger
from arena.logic.signatures import HmacSignatureVerifier
from arena.session.service import ArenaService
from arena.storage import SqliteMatchStore
from arena.tests.unit.helpers import TEST_CARDS, TEST_SECRET, FakeClock
from shared.dal.models import PlayerAccount
from shared.db import Database, SqlitePlayerRepository, SqliteRewardRepository

if TYPE_CHECKING:
    from pathlib import Path

STARTING_MANA = 1000
STARTING_RET = 500


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "arena.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(db: Database) -> SqliteMatchStore:
    return SqliteMatchStore(db)


@pytest.fixture
def catalog() -> InMemoryCardCatalog:
    return InMemoryCardCatalog(TEST_CARDS)


@pytest.fixture
async def unseeded_ledger(db: Database) -> EconomyLedger:
    """Ledger with players but an empty reward table."""
    ledger = EconomyLedger(SqlitePlayerRepository(db), SqliteRewardRepository(db), retry_delay_seconds=0)
    for username in ("alice", "bob", "carol"):
        await ledger.create_player(
            PlayerAccount(username=username, rank_tier="rookie1", mana_balance=STARTING_MANA, ret_balance=STARTING_RET),
        )
    await ledger.create_player(PlayerAccount(username="dave", rank_tier="rookie1", mana_balance=5, ret_balance=5))
    return ledger


@pytest.fixture
async def ledger(unseeded_ledger: EconomyLedger) -> EconomyLedger:
    await unseeded_ledger.seed_rewards(DEFAULT_REWARD_TABLE)
    return unseeded_ledger


def _build_service(store, ledger, catalog, clock) -> ArenaService:
    counter = itertools.count(1)
    return ArenaService(
        store=store,
        ledger=ledger,
        catalog=catalog,
        verifier=HmacSignatureVerifier(TEST_SECRET),
        clock=clock,
        id_factory=lambda: f"bet-{next(counter)}",
    )


@pytest.fixture
def service(store, ledger, catalog, clock) -> ArenaService:
    return _build_service(store, ledger, catalog, clock)


@pytest.fixture
def unseeded_service(store, unseeded_ledger, catalog, clock) -> ArenaService:
    return _build_service(store, unseeded_ledger, catalog, clock)
