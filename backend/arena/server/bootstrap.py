"""Wire the arena together from settings: logging, database, repositories and service."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

import structlog

from arena.logic.ledger import EconomyLedger
from arena.logic.signatures import HmacSignatureVerifier
from arena.server.settings import ArenaSettings
from arena.session.service import ArenaService
from arena.storage import SqliteCardCatalog, SqliteMatchStore
from shared.db import Database, SqlitePlayerRepository, SqliteRewardRepository
from shared.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

logger = structlog.get_logger()


class Arena(NamedTuple):
    """A wired arena and the resources it owns."""

    service: ArenaService
    ledger: EconomyLedger
    catalog: SqliteCardCatalog
    store: SqliteMatchStore
    db: Database

    def close(self) -> None:
        self.db.close()


def build_arena(
    settings: ArenaSettings | None = None,
    *,
    configure_logging: bool = True,
    clock: Callable[[], datetime] | None = None,
) -> Arena:
    """Open the database and build every component from ``settings``."""
    settings = settings or ArenaSettings()
    if configure_logging:
        setup_logging(log_dir=Path(settings.log_dir))

    db = Database(settings.database_path)
    db.connect()

    ledger = EconomyLedger(
        SqlitePlayerRepository(db),
        SqliteRewardRepository(db),
        retry_attempts=settings.ledger_retry_attempts,
        retry_delay_seconds=settings.ledger_retry_delay_seconds,
    )
    catalog = SqliteCardCatalog(db)
    store = SqliteMatchStore(db)
    extra = {"clock": clock} if clock is not None else {}
    service = ArenaService(
        store=store,
        ledger=ledger,
        catalog=catalog,
        verifier=HmacSignatureVerifier(settings.signature_secret),
        settings=settings.to_match_settings(),
        **extra,
    )
    logger.info("arena built", database=settings.database_path, tie_policy=settings.tie_policy)
    return Arena(service=service, ledger=ledger, catalog=catalog, store=store, db=db)


async def start_arena(settings: ArenaSettings | None = None) -> Arena:
    """Build the arena, seed the reward table when it is empty, and restore the active-match index."""
    arena = build_arena(settings)
    if not await arena.ledger.get_rewards():
        await arena.ledger.seed_rewards()
        logger.info("reward table seeded with defaults")
    restored = await arena.service.restore_active_index()
    logger.info("active matches restored", matches=restored)
    return arena
