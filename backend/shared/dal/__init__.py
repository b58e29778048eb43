"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.models import Currency, LedgerEntry, PlayerAccount
from shared.dal.player_repository import PlayerRepository
from shared.dal.reward_repository import RewardRepository

__all__ = [
    "Currency",
    "LedgerEntry",
    "PlayerAccount",
    "PlayerRepository",
    "RewardRepository",
]
