"""Which match each player is currently seated in."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from arena.logic.exceptions import PlayerBusyError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger()


class ActiveMatchIndex:
    """Lock-guarded player -> match id store.

    ``claim`` is all-or-nothing: either every player is seated in the new
    match or none is.
    """

    def __init__(self) -> None:
        self._by_player: dict[str, str] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(player: str) -> str:
        return player.casefold()

    async def claim(self, players: Iterable[str], match_id: str) -> None:
        players = list(players)
        async with self._lock:
            for player in players:
                current = self._by_player.get(self._key(player))
                if current is not None and current != match_id:
                    raise PlayerBusyError(f"{player} is already in match {current}")
            for player in players:
                self._by_player[self._key(player)] = match_id

    async def release(self, players: Iterable[str], match_id: str) -> None:
        """Remove players from the index if they are still seated in ``match_id``."""
        async with self._lock:
            for player in players:
                if self._by_player.get(self._key(player)) == match_id:
                    del self._by_player[self._key(player)]
        logger.debug("players released from match", match_id=match_id)

    async def match_for(self, player: str) -> str | None:
        async with self._lock:
            return self._by_player.get(self._key(player))

    async def snapshot(self) -> dict[str, str]:
        async with self._lock:
            return dict(self._by_player)
