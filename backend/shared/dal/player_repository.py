"""Abstract interface for player balance persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import Currency, LedgerEntry, PlayerAccount


class PlayerRepository(ABC):
    """Abstract interface for player accounts and their balance history.

    Balance debits must be a single compare-and-decrement against the stored
    value so concurrent debits can never overdraw an account.
    """

    @abstractmethod
    async def create_player(self, player: PlayerAccount) -> None: ...

    @abstractmethod
    async def get_player(self, username: str) -> PlayerAccount | None: ...

    @abstractmethod
    async def deduct_balance(
        self,
        username: str,
        amount: float,
        currency: Currency,
        reason: str,
        match_id: str | None = None,
    ) -> LedgerEntry | None:
        """Debit the balance when it covers the amount. Return None when it does not (or no such player)."""
        ...

    @abstractmethod
    async def credit_balance(
        self,
        username: str,
        amount: float,
        currency: Currency,
        reason: str,
        match_id: str | None = None,
    ) -> LedgerEntry | None:
        """Credit the balance. Return None when the player does not exist."""
        ...

    @abstractmethod
    async def set_balance(
        self, username: str, amount: float, currency: Currency, reason: str
    ) -> LedgerEntry | None: ...

    @abstractmethod
    async def adjust_xp(self, username: str, delta: int, *, add_win: bool = False) -> int | None:
        """Apply an XP delta clamped at zero. Return the new XP, or None when the player does not exist."""
        ...

    @abstractmethod
    async def get_history(self, username: str, currency: Currency) -> list[LedgerEntry]: ...

    @abstractmethod
    async def list_players(self) -> list[PlayerAccount]: ...
