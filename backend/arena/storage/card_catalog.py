"""SQLite-backed card catalog."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from arena.logic.cards import SENTINEL_CARD, SENTINEL_CARD_ID, Card, CardCatalog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteCardCatalog(CardCatalog):
    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_card(self, card_id: int) -> Card | None:
        if card_id == SENTINEL_CARD_ID:
            return SENTINEL_CARD
        row = self._db.connection.execute("SELECT data FROM cards WHERE id = ?", (card_id,)).fetchone()
        if row is None:
            return None
        return Card.model_validate_json(row[0])

    async def list_cards(self) -> list[Card]:
        rows = self._db.connection.execute("SELECT data FROM cards ORDER BY id").fetchall()
        return [Card.model_validate_json(row[0]) for row in rows]

    async def upsert_cards(self, cards: Iterable[Card]) -> None:
        """Insert or replace cards by id. The sentinel id is rejected."""
        cards = list(cards)
        if any(card.card_id == SENTINEL_CARD_ID for card in cards):
            raise ValueError(f"Card id {SENTINEL_CARD_ID} is reserved for the empty slot")
        async with self._lock:
            with self._db.transaction() as conn:
                conn.executemany(
                    "INSERT INTO cards (id, data) VALUES (?, ?) ON CONFLICT (id) DO UPDATE SET data = excluded.data",
                    [(card.card_id, card.model_dump_json()) for card in cards],
                )
        logger.info("cards upserted", count=len(cards))
