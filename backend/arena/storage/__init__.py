"""Match and card persistence: interfaces and SQLite implementations."""

from arena.storage.card_catalog import SqliteCardCatalog
from arena.storage.match_store import MatchStore
from arena.storage.sqlite_match_store import SqliteMatchStore

__all__ = [
    "MatchStore",
    "SqliteCardCatalog",
    "SqliteMatchStore",
]
