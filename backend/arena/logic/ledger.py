"""
Economy ledger: the only path by which balances, XP and rewards change.

Wraps the player and reward repositories, turning their ``None`` results
into typed errors and retrying transient SQLite lock errors a bounded
number of times.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import structlog

from arena.logic.economy import DEFAULT_REWARD_TABLE, compute_reward_table, max_daily_mana, normalize_rank_tier
from arena.logic.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    PlayerNotFoundError,
    RewardConfigMissingError,
    RewardTableMissingError,
)
from shared.dal.models import Currency
from shared.db.retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY_SECONDS, with_retry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import date, datetime

    from shared.dal.models import LedgerEntry, PlayerAccount
    from shared.dal.player_repository import PlayerRepository
    from shared.dal.reward_repository import RewardRepository

logger = structlog.get_logger()

T = TypeVar("T")

DAILY_RESET_REASON = "Daily reset"


class EconomyLedger:
    def __init__(
        self,
        players: PlayerRepository,
        rewards: RewardRepository,
        *,
        retry_attempts: int = DEFAULT_ATTEMPTS,
        retry_delay_seconds: float = DEFAULT_DELAY_SECONDS,
    ) -> None:
        self._players = players
        self._rewards = rewards
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay_seconds

    async def _retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_retry(operation, attempts=self._retry_attempts, delay_seconds=self._retry_delay)

    # --- players ---

    async def create_player(self, player: PlayerAccount) -> None:
        await self._retry(lambda: self._players.create_player(player))

    async def get_player(self, username: str) -> PlayerAccount:
        player = await self._players.get_player(username)
        if player is None:
            raise PlayerNotFoundError(f"Player {username} not found")
        return player

    async def get_balance(self, username: str, currency: Currency) -> float:
        return (await self.get_player(username)).balance(currency)

    async def get_history(self, username: str, currency: Currency) -> list[LedgerEntry]:
        await self.get_player(username)
        return await self._players.get_history(username, currency)

    # --- balances ---

    async def deduct_balance(
        self,
        username: str,
        amount: float,
        currency: Currency,
        reason: str,
        match_id: str | None = None,
    ) -> LedgerEntry:
        """Atomically debit a balance, failing rather than ever going negative."""
        if amount < 0:
            raise InvalidAmountError(f"Deduction amount must be non-negative, got {amount}")
        entry = await self._retry(lambda: self._players.deduct_balance(username, amount, currency, reason, match_id))
        if entry is None:
            player = await self._players.get_player(username)
            if player is None:
                raise PlayerNotFoundError(f"Player {username} not found")
            raise InsufficientBalanceError(
                f"{username} has {player.balance(currency)} {currency}, needs {amount}",
            )
        logger.info("balance deducted", player=username, amount=amount, currency=currency, reason=reason)
        return entry

    async def credit_balance(
        self,
        username: str,
        amount: float,
        currency: Currency,
        reason: str,
        match_id: str | None = None,
    ) -> LedgerEntry:
        if amount < 0:
            raise InvalidAmountError(f"Credit amount must be non-negative, got {amount}")
        entry = await self._retry(lambda: self._players.credit_balance(username, amount, currency, reason, match_id))
        if entry is None:
            raise PlayerNotFoundError(f"Player {username} not found")
        logger.info("balance credited", player=username, amount=amount, currency=currency, reason=reason)
        return entry

    async def adjust_xp(self, username: str, delta: int, *, add_win: bool = False) -> int:
        """Move XP by ``delta`` (clamped at zero) and optionally count a win. Returns the new XP."""
        xp = await self._retry(lambda: self._players.adjust_xp(username, delta, add_win=add_win))
        if xp is None:
            raise PlayerNotFoundError(f"Player {username} not found")
        return xp

    async def reset_daily_mana(self) -> int:
        """Set every player's mana to their tier's daily maximum. Returns how many were reset."""
        players = await self._players.list_players()
        for player in players:
            await self._retry(
                lambda player=player: self._players.set_balance(
                    player.username,
                    max_daily_mana(player.rank_tier),
                    Currency.MANA,
                    DAILY_RESET_REASON,
                ),
            )
        logger.info("daily mana reset", players=len(players))
        return len(players)

    # --- rewards ---

    async def lookup_reward(self, rank_tier: str) -> float:
        """
        Return the payout for a rank tier.

        Raises:
            RewardTableMissingError: If the reward table has no rows at all
            RewardConfigMissingError: If the tier has no row

        """
        rewards = await self._retry(self._rewards.get_rewards)
        if not rewards:
            raise RewardTableMissingError("Reward table is empty")
        tier = normalize_rank_tier(rank_tier)
        if tier not in rewards:
            raise RewardConfigMissingError(f"No reward configured for rank tier '{tier}'")
        return rewards[tier]

    async def get_rewards(self) -> dict[str, float]:
        return await self._retry(self._rewards.get_rewards)

    async def seed_rewards(self, rewards: dict[str, float] | None = None) -> None:
        table = rewards if rewards is not None else DEFAULT_REWARD_TABLE
        await self._retry(lambda: self._rewards.replace_rewards(table))

    async def refresh_rewards(self, today: date | datetime | None = None) -> dict[str, float]:
        """Recompute the reward table for a day and store it."""
        table = compute_reward_table(today)
        await self.seed_rewards(table)
        return table

