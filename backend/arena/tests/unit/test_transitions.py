import pytest

from arena.logic.enums import BetTransactionStatus, MatchStatus, PlayerBetStatus, WagerStatus
from arena.logic.exceptions import InvalidTransitionError
from arena.logic.transitions import (
    MATCH_TRANSITIONS,
    PLAYER_BET_TRANSITIONS,
    TRANSACTION_TRANSITIONS,
    WAGER_TRANSITIONS,
    can_transition,
    ensure_transition,
)


class TestTablesAreComplete:
    @pytest.mark.parametrize(
        ("enum", "table"),
        [
            (MatchStatus, MATCH_TRANSITIONS),
            (WagerStatus, WAGER_TRANSITIONS),
            (PlayerBetStatus, PLAYER_BET_TRANSITIONS),
            (BetTransactionStatus, TRANSACTION_TRANSITIONS),
        ],
    )
    def test_every_status_has_a_row(self, enum, table):
        assert set(table) == set(enum)


class TestMatchTransitions:
    def test_active_to_decks_submitted_and_back(self):
        assert can_transition(MatchStatus.ACTIVE, MatchStatus.DECKS_SUBMITTED)
        assert can_transition(MatchStatus.DECKS_SUBMITTED, MatchStatus.ACTIVE)

    @pytest.mark.parametrize("target", list(MatchStatus))
    def test_completed_is_terminal(self, target):
        assert not can_transition(MatchStatus.COMPLETED, target)

    def test_ensure_returns_target(self):
        assert ensure_transition(MatchStatus.ACTIVE, MatchStatus.COMPLETED) == MatchStatus.COMPLETED

    def test_ensure_raises_with_machine_name(self):
        with pytest.raises(InvalidTransitionError, match="invalid match transition: completed -> active"):
            ensure_transition(MatchStatus.COMPLETED, MatchStatus.ACTIVE)


class TestWagerTransitions:
    @pytest.mark.parametrize("closed", [WagerStatus.FOLDED, WagerStatus.FORFEITED, WagerStatus.SETTLED])
    def test_closed_ladder_cannot_reopen(self, closed):
        assert not can_transition(closed, WagerStatus.PENDING)

    def test_called_can_be_raised(self):
        assert can_transition(WagerStatus.CALLED, WagerStatus.RAISED)


class TestPlayerBetTransitions:
    def test_only_pending_can_check(self):
        assert can_transition(PlayerBetStatus.PENDING, PlayerBetStatus.CHECKED)
        assert not can_transition(PlayerBetStatus.BET, PlayerBetStatus.CHECKED)

    def test_folded_is_terminal(self):
        with pytest.raises(InvalidTransitionError, match="player bet"):
            ensure_transition(PlayerBetStatus.FOLDED, PlayerBetStatus.PENDING)


class TestTransactionTransitions:
    @pytest.mark.parametrize(
        "target",
        [BetTransactionStatus.CALLED, BetTransactionStatus.RAISED, BetTransactionStatus.FOLDED],
    )
    def test_pending_resolves_once(self, target):
        assert can_transition(BetTransactionStatus.PENDING, target)
        assert not can_transition(target, BetTransactionStatus.PENDING)
        assert not can_transition(target, BetTransactionStatus.CALLED)
