import asyncio

import pytest

from arena.logic.exceptions import PlayerBusyError
from arena.session.locks import MatchLocks
from arena.session.match_index import ActiveMatchIndex


class TestMatchLocks:
    async def test_same_match_runs_one_at_a_time(self):
        locks = MatchLocks()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("m1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]

    async def test_different_matches_use_different_locks(self):
        locks = MatchLocks()
        assert locks.get("m1") is not locks.get("m2")
        assert locks.get("m1") is locks.get("m1")

    async def test_discard_removes_idle_lock(self):
        locks = MatchLocks()
        locks.get("m1")
        locks.discard("m1")
        assert "m1" not in locks
        assert len(locks) == 0

    async def test_discard_keeps_held_lock(self):
        locks = MatchLocks()
        async with locks.hold("m1"):
            locks.discard("m1")
            assert "m1" in locks
        assert "m1" not in locks

    async def test_discard_keeps_lock_for_queued_waiter(self):
        locks = MatchLocks()
        entered = asyncio.Event()
        release = asyncio.Event()
        lock = locks.get("m1")
        seen: list[asyncio.Lock] = []
        kept: list[bool] = []

        async def holder() -> None:
            async with locks.hold("m1"):
                entered.set()
                await release.wait()
            locks.discard("m1")
            kept.append("m1" in locks)

        async def waiter() -> None:
            async with locks.hold("m1"):
                seen.append(locks.get("m1"))

        holding = asyncio.create_task(holder())
        await entered.wait()
        waiting = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(holding, waiting)

        assert kept == [True]
        assert seen == [lock]
        assert "m1" not in locks


class TestActiveMatchIndex:
    async def test_claim_and_lookup(self):
        index = ActiveMatchIndex()
        await index.claim(["alice", "bob"], "m1")
        assert await index.match_for("ALICE") == "m1"
        assert await index.snapshot() == {"alice": "m1", "bob": "m1"}

    async def test_busy_player_blocks_whole_claim(self):
        index = ActiveMatchIndex()
        await index.claim(["alice", "bob"], "m1")
        with pytest.raises(PlayerBusyError, match="bob"):
            await index.claim(["carol", "Bob"], "m2")
        assert await index.match_for("carol") is None

    async def test_reclaiming_same_match_is_allowed(self):
        index = ActiveMatchIndex()
        await index.claim(["alice", "bob"], "m1")
        await index.claim(["alice", "bob"], "m1")
        assert await index.match_for("bob") == "m1"

    async def test_release_only_own_match(self):
        index = ActiveMatchIndex()
        await index.claim(["alice", "bob"], "m1")
        await index.release(["alice", "bob"], "m2")
        assert await index.match_for("alice") == "m1"
        await index.release(["alice", "bob"], "m1")
        assert await index.snapshot() == {}
