"""
Round progression and win-condition checks.

A round moves awaiting-selections -> simulating -> (winner found | advanced).
``validate_selection`` runs at reveal time for the revealing player;
``conclude_round`` folds a simulated outcome into the match and decides
whether it ended; ``reset_wager_for_round`` reopens the betting ladder for
the next round.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import structlog

from arena.logic.battle import energy_cost
from arena.logic.cards import SENTINEL_CARD_ID
from arena.logic.enums import EndReason, MatchStatus, PlayerBetStatus, TiePolicy, WagerStatus
from arena.logic.exceptions import EnergyExceededError, InvalidSelectionError, SelectionMismatchError
from arena.logic.rng import first_slot
from arena.logic.state import WagerPlayerStats
from arena.logic.transitions import ensure_transition

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime

    from arena.logic.battle import RoundOutcome
    from arena.logic.cards import Card
    from arena.logic.settings import MatchSettings
    from arena.logic.state import Match, Wager

logger = structlog.get_logger()


class RoundConclusion(NamedTuple):
    """Match after a simulated round, plus how (and whether) it ended."""

    match: Match
    ended: bool
    winner: str | None
    loser: str | None


def validate_selection(
    match: Match,
    player: str,
    selection: Sequence[int],
    cards: Mapping[int, Card],
    settings: MatchSettings,
) -> None:
    """
    Check a revealed selection against the previous round's survivors and the energy budget.

    Raises:
        InvalidSelectionError: If a card id is used in two slots
        SelectionMismatchError: If a surviving card is not replayed at its slot
        EnergyExceededError: If the cards cost more than this round's budget

    """
    real_cards = [card_id for card_id in selection if card_id != SENTINEL_CARD_ID]
    if len(set(real_cards)) != len(real_cards):
        raise InvalidSelectionError(f"{player} selected the same card in more than one slot")

    survivors = match.previous_survivors(player)
    if survivors is not None:
        for slot, snapshot in enumerate(survivors):
            if not snapshot.is_empty and snapshot.card_id != selection[slot]:
                raise SelectionMismatchError(
                    f"{player}'s card at position {slot} does not match the remaining card from the previous round",
                )

    budget = settings.energy_budget(match.round)
    cost = energy_cost(selection, cards)
    if cost > budget:
        raise EnergyExceededError(player=player, cost=cost, budget=budget)


def resolve_round_cap(
    match: Match, base_health: Mapping[str, int], tie_policy: TiePolicy
) -> tuple[str | None, str | None]:
    """Winner and loser at the round cap; (None, None) is a draw."""
    first, second = match.players
    if base_health[first] > base_health[second]:
        return first, second
    if base_health[second] > base_health[first]:
        return second, first
    if tie_policy == TiePolicy.SLOT_TWO:
        return second, first
    if tie_policy == TiePolicy.COIN_FLIP:
        winner = match.players[first_slot(match.match_id, match.round)]
        return winner, match.opponent(winner)
    return None, None


def conclude_round(match: Match, outcome: RoundOutcome, settings: MatchSettings, now: datetime) -> RoundConclusion:
    """Apply a simulated outcome and decide whether the match ends."""
    played = match.round
    updated = match.model_copy(
        update={
            "player_stats": dict(outcome.player_stats),
            "battle_history": {**match.battle_history, played: outcome.history},
            "remaining_cards": {**match.remaining_cards, played: dict(outcome.remaining)},
            "updated_at": now,
        },
    )

    if outcome.winner is not None:
        return _end(updated, outcome.winner, outcome.loser, EndReason.BASE_DESTROYED)

    if played >= settings.max_rounds:
        base_health = {player: stats.base_health for player, stats in outcome.player_stats.items()}
        winner, loser = resolve_round_cap(updated, base_health, settings.tie_policy)
        if winner is None:
            return _end(updated, None, None, EndReason.DRAW)
        return _end(updated, winner, loser, EndReason.ROUND_CAP)

    advanced = updated.model_copy(update={"round": played + 1, "waiting_for": updated.players})
    logger.info("round advanced", round=advanced.round)
    return RoundConclusion(match=advanced, ended=False, winner=None, loser=None)


def _end(match: Match, winner: str | None, loser: str | None, reason: EndReason) -> RoundConclusion:
    closed = close_match(match, winner, reason)
    logger.info("match ended", winner=winner, end_reason=reason, round=match.round)
    return RoundConclusion(match=closed, ended=True, winner=winner, loser=loser)


def close_match(match: Match, winner: str | None, reason: EndReason) -> Match:
    """Return the match completed with its winner (None for a draw) and end reason."""
    status = ensure_transition(match.status, MatchStatus.COMPLETED)
    return match.model_copy(update={"status": status, "winner": winner, "end_reason": reason, "waiting_for": ()})


def reset_wager_for_round(wager: Wager, round_number: int, now: datetime) -> Wager:
    """Reopen the ladder for a new round: both players and the ladder back to pending."""
    status = ensure_transition(wager.status, WagerStatus.PENDING)
    stats = {
        player: WagerPlayerStats(status=ensure_transition(wager.player_status(player), PlayerBetStatus.PENDING))
        for player in wager.players
    }
    return wager.model_copy(
        update={"status": status, "player_stats": stats, "round": round_number, "last_bet_time": now},
    )
