"""SQLite-backed reward table repository."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from shared.dal.reward_repository import RewardRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteRewardRepository(RewardRepository):
    """Stores one row per rank tier; the table as a whole is the singleton reward configuration."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_rewards(self) -> dict[str, float]:
        rows = self._db.connection.execute("SELECT rank_tier, payout FROM reward_table").fetchall()
        return {row[0]: row[1] for row in rows}

    async def replace_rewards(self, rewards: dict[str, float]) -> None:
        async with self._lock:
            with self._db.transaction() as conn:
                conn.execute("DELETE FROM reward_table")
                conn.executemany(
                    "INSERT INTO reward_table (rank_tier, payout) VALUES (?, ?)",
                    list(rewards.items()),
                )
        logger.info("reward table replaced", tiers=len(rewards))
