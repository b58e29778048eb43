"""Service tests for match intake, deck submission, the active-match index and reporting."""

from datetime import timedelta

import pytest

from arena.logic.commit_reveal import hash_selection
from arena.logic.enums import ErrorCode, MatchStatus, MatchType
from arena.logic.signatures import HmacSignatureVerifier
from arena.session.service import ArenaService
from arena.tests.unit.helpers import START, TEST_SECRET, sign
from shared.dal.models import Currency


async def _open(service, match_id="m1", players=("alice", "bob"), match_type=MatchType.WAGERED, **kwargs):
    result = await service.open_match(match_id, *players, "rookie1", match_type, **kwargs)
    assert result.success, result.message
    return result


class TestOpenMatch:
    async def test_takes_buy_in_from_both_players(self, service, ledger):
        result = await _open(service, match_type=MatchType.RANKED)

        assert result.data == {"match_id": "m1", "stake": 1.0, "currency": Currency.MANA}
        assert await ledger.get_balance("alice", Currency.MANA) == 999
        assert await ledger.get_balance("bob", Currency.MANA) == 999
        match = (await service.get_match("m1")).data["match"]
        assert match.status == MatchStatus.ACTIVE
        assert match.round == 1
        assert match.waiting_for == ("alice", "bob")
        assert match.total_mana_pool == 2
        assert match.player_stats["alice"].base_health == 15

    async def test_wagered_match_stakes_reward_token(self, service, ledger):
        await _open(service, stake=10)

        assert await ledger.get_balance("alice", Currency.RET) == 490
        wager = (await service.get_wager_details("m1")).data["wager"]
        assert wager.currency == Currency.RET
        assert wager.total_pool == 20

    async def test_rank_tier_is_normalized(self, service):
        result = await service.open_match("m1", "alice", "bob", "Rookie 1", MatchType.RANKED)
        assert result.success
        assert (await service.get_match("m1")).data["match"].rank_tier == "rookie1"

    async def test_same_player_twice(self, service):
        result = await service.open_match("m1", "alice", "Alice", "rookie1", MatchType.RANKED)
        assert result.code == ErrorCode.INVALID_STATE

    async def test_duplicate_match_id(self, service):
        await _open(service)
        result = await service.open_match("m1", "carol", "dave", "rookie1", MatchType.RANKED)
        assert result.code == ErrorCode.INVALID_STATE

    async def test_unknown_player(self, service):
        result = await service.open_match("m1", "alice", "ghost", "rookie1", MatchType.RANKED)
        assert result.code == ErrorCode.PLAYER_NOT_FOUND

    async def test_busy_player(self, service):
        await _open(service)
        result = await service.open_match("m2", "carol", "bob", "rookie1", MatchType.RANKED)
        assert result.code == ErrorCode.PLAYER_BUSY

    async def test_failed_buy_in_is_refunded(self, service, ledger):
        result = await service.open_match("m1", "alice", "dave", "rookie1", MatchType.WAGERED, stake=10)

        assert result.code == ErrorCode.INSUFFICIENT_BALANCE
        assert await ledger.get_balance("alice", Currency.RET) == 500
        reasons = [h.reason for h in await ledger.get_history("alice", Currency.RET)]
        assert reasons == ["match buy-in", "match buy-in refund"]
        assert await service.active_matches.snapshot() == {}
        assert (await service.get_match("m1")).code == ErrorCode.MATCH_NOT_FOUND

    async def test_negative_stake(self, service):
        result = await service.open_match("m1", "alice", "bob", "rookie1", MatchType.WAGERED, stake=-1)
        assert result.code == ErrorCode.INVALID_AMOUNT

    async def test_zero_stake_moves_no_money(self, service, ledger):
        await _open(service, stake=0)
        assert await ledger.get_history("alice", Currency.RET) == []


class TestActiveIndex:
    async def test_players_released_when_match_ends(self, service):
        await _open(service, stake=0)
        await service.surrender("m1", "alice", sign("alice", "m1", "surrender"))

        assert await service.active_matches.match_for("alice") is None
        await _open(service, "m2", ("alice", "carol"), stake=0)

    async def test_restore_from_store(self, service, store, ledger, catalog):
        await _open(service)
        await _open(service, "m2", ("carol", "dave"), stake=0)
        await service.surrender("m2", "carol", sign("carol", "m2", "surrender"))

        fresh = ArenaService(store=store, ledger=ledger, catalog=catalog, verifier=HmacSignatureVerifier(TEST_SECRET))
        assert await fresh.restore_active_index() == 1
        assert await fresh.active_matches.snapshot() == {"alice": "m1", "bob": "m1"}


class TestSubmitDeck:
    async def test_both_decks_move_match_to_decks_submitted(self, service):
        await _open(service)
        first = await service.submit_deck("m1", "alice", "deck-a", ["h1", "h2"])
        second = await service.submit_deck("m1", "bob", "deck-b")

        assert first.data == {"status": MatchStatus.ACTIVE}
        assert second.data == {"status": MatchStatus.DECKS_SUBMITTED}
        match = (await service.get_match("m1")).data["match"]
        assert match.decks["alice"].card_hashes == ("h1", "h2")

    async def test_first_commit_reactivates_match(self, service):
        await _open(service)
        await service.submit_deck("m1", "alice", "deck-a")
        await service.submit_deck("m1", "bob", "deck-b")
        await service.commit_cards("m1", "alice", hash_selection([1, 2, 3]))

        assert (await service.get_match("m1")).data["match"].status == MatchStatus.ACTIVE

    async def test_deck_after_commit_rejected(self, service):
        await _open(service)
        await service.commit_cards("m1", "alice", hash_selection([1, 2, 3]))
        result = await service.submit_deck("m1", "bob", "deck-b")
        assert result.code == ErrorCode.INVALID_STATE

    async def test_deck_twice_rejected(self, service):
        await _open(service)
        await service.submit_deck("m1", "alice", "deck-a")
        result = await service.submit_deck("m1", "alice", "deck-a2")
        assert result.code == ErrorCode.INVALID_STATE

    async def test_outsider_rejected(self, service):
        await _open(service)
        result = await service.submit_deck("m1", "carol", "deck-c")
        assert result.code == ErrorCode.PLAYER_NOT_IN_MATCH


class TestReporting:
    async def test_wager_details_time_remaining(self, service, clock):
        await _open(service)
        clock.advance(100)
        details = (await service.get_wager_details("m1")).data
        assert details["time_remaining"] == 200
        assert details["expired"] is False

        clock.advance(201)
        details = (await service.get_wager_details("m1")).data
        assert details["time_remaining"] == 0
        assert details["expired"] is True

    async def test_unknown_wager(self, service):
        assert (await service.get_wager_details("nope")).code == ErrorCode.WAGER_NOT_FOUND

    async def test_compliance_report_window(self, service, clock):
        await _open(service, stake=0)
        clock.advance(2 * 24 * 3600)
        await _open(service, "m2", ("carol", "dave"), stake=0)

        report = await service.compliance_report(START - timedelta(hours=1), START + timedelta(hours=1))
        assert [w.match_id for w in report.data["wagers"]] == ["m1"]

    async def test_compliance_report_rejects_reversed_window(self, service):
        report = await service.compliance_report(START, START - timedelta(seconds=1))
        assert report.code == ErrorCode.INVALID_STATE

    async def test_balance_and_history(self, service):
        await _open(service, stake=10)
        balance = await service.get_balance("alice", Currency.RET)
        assert balance.data == {"balance": 490, "currency": Currency.RET}
        history = await service.get_history("alice", Currency.RET)
        assert [e.change for e in history.data["entries"]] == [-10]

    @pytest.mark.parametrize("method", ["get_balance", "get_history"])
    async def test_unknown_player(self, service, method):
        result = await getattr(service, method)("ghost", Currency.MANA)
        assert result.code == ErrorCode.PLAYER_NOT_FOUND
