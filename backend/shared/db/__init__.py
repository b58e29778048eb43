"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.player_repository import SqlitePlayerRepository
from shared.db.reward_repository import SqliteRewardRepository

__all__ = [
    "Database",
    "SqlitePlayerRepository",
    "SqliteRewardRepository",
]
