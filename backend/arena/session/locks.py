"""Per-match serialization: one asyncio lock per match id."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class MatchLocks:
    """Keyed lock registry.

    Every mutating operation on a match runs inside ``hold(match_id)``, so
    two players acting on the same match are applied one after the other
    while different matches proceed independently.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}  # match_id -> Lock
        self._users: dict[str, int] = {}  # match_id -> holders plus queued waiters
        self._retired: set[str] = set()

    def get(self, match_id: str) -> asyncio.Lock:
        lock = self._locks.get(match_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[match_id] = lock
        return lock

    @contextlib.asynccontextmanager
    async def hold(self, match_id: str) -> AsyncIterator[None]:
        lock = self.get(match_id)
        self._users[match_id] = self._users.get(match_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[match_id] -= 1
            if not self._users[match_id]:
                del self._users[match_id]
                if match_id in self._retired:
                    self._drop(match_id)

    def discard(self, match_id: str) -> None:
        """Forget a finished match's lock once nobody holds or waits for it.

        While callers are still queued the lock is kept and dropped when the
        last of them leaves ``hold``.
        """
        if self._users.get(match_id):
            self._retired.add(match_id)
        else:
            self._drop(match_id)

    def _drop(self, match_id: str) -> None:
        self._retired.discard(match_id)
        self._locks.pop(match_id, None)

    def __contains__(self, match_id: str) -> bool:
        return match_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)
