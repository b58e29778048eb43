"""Abstract interface for match, wager and bet transaction persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from arena.logic.enums import MatchStatus
    from arena.logic.state import BetTransaction, Match, Wager


class MatchStore(ABC):
    """Stores a match together with its wager and bet transactions.

    ``save`` is a conditional write: it succeeds only while the stored match
    still has the version and round of ``expected``, and it writes the match,
    the wager and any transactions in one transaction.
    """

    @abstractmethod
    async def create(self, match: Match, wager: Wager) -> None:
        """Insert a new match and its wager. Raises ValueError when the match id exists."""
        ...

    @abstractmethod
    async def get_match(self, match_id: str) -> Match | None: ...

    @abstractmethod
    async def get_wager(self, match_id: str) -> Wager | None: ...

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> BetTransaction | None: ...

    @abstractmethod
    async def save(
        self,
        match: Match,
        wager: Wager,
        transactions: Iterable[BetTransaction] = (),
        *,
        expected: Match,
    ) -> Match:
        """
        Persist new snapshots and return the match with its bumped version.

        Raises:
            ConcurrentModificationError: If the stored match moved past ``expected``

        """
        ...

    @abstractmethod
    async def list_matches(self, status: MatchStatus | None = None) -> list[Match]: ...

    @abstractmethod
    async def list_wagers_between(self, start: datetime, end: datetime) -> list[Wager]:
        """Wagers created in ``[start, end]``, oldest first."""
        ...
