"""
Commit-reveal protocol for per-round card selections.

A player first commits the SHA-256 of their ordered card-id triple, then
reveals the plaintext. The hash is the hex digest of the compact JSON
array (``[1,2,3]``), so commitments produced by existing clients keep
verifying.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import TYPE_CHECKING

from arena.logic.enums import MatchStatus
from arena.logic.exceptions import (
    AlreadyCommittedError,
    AlreadyRevealedError,
    CardVerificationFailedError,
    InvalidSelectionError,
    InvalidStateError,
    MatchNotActiveError,
    OpponentNotCommittedError,
    PlayerNotInMatchError,
)
from arena.logic.state_utils import drop_round_entry, set_round_entry
from arena.logic.transitions import ensure_transition

if TYPE_CHECKING:
    from collections.abc import Sequence

    from arena.logic.state import Match


def hash_selection(cards: Sequence[int]) -> str:
    """SHA-256 hex digest of the compact JSON encoding of the card ids."""
    payload = json.dumps(list(cards), separators=(",", ":"))
    return hashlib.sha256(payload.encode()).hexdigest()


def verify_selection(cards: Sequence[int], commitment: str) -> bool:
    """Constant-time comparison of the recomputed hash against the commitment."""
    return hmac.compare_digest(hash_selection(cards).encode(), commitment.lower().encode())


def _require_player(match: Match, player: str) -> None:
    if not match.has_player(player):
        raise PlayerNotInMatchError(f"{player} is not a player in match {match.match_id}")


def commit_cards(match: Match, player: str, card_hash: str) -> Match:
    """Record a player's commitment for the current round.

    A ``decks_submitted`` match becomes ``active`` on its first commitment.
    """
    if match.status not in (MatchStatus.ACTIVE, MatchStatus.DECKS_SUBMITTED):
        raise MatchNotActiveError(f"Match {match.match_id} is {match.status}")
    _require_player(match, player)
    if not card_hash:
        raise InvalidSelectionError("Card hash must not be empty")
    if match.commitment(player) is not None:
        raise AlreadyCommittedError(f"{player} already committed cards for round {match.round}")

    status = match.status
    if status == MatchStatus.DECKS_SUBMITTED:
        status = ensure_transition(status, MatchStatus.ACTIVE)
    return match.model_copy(
        update={
            "card_hashes": set_round_entry(match.card_hashes, match.round, player, card_hash),
            "waiting_for": tuple(p for p in match.waiting_for if p != player),
            "status": status,
        },
    )


def check_reveal(match: Match, player: str, cards: Sequence[int], slots: int) -> tuple[int, ...]:
    """Validate a reveal against the stored commitment without touching state.

    Returns the selection as a tuple. Raises MatchNotActiveError,
    InvalidStateError (nothing committed), OpponentNotCommittedError,
    CardVerificationFailedError, AlreadyRevealedError or
    InvalidSelectionError.
    """
    if match.status != MatchStatus.ACTIVE:
        raise MatchNotActiveError(f"Match {match.match_id} is {match.status}")
    _require_player(match, player)
    commitment = match.commitment(player)
    if commitment is None:
        raise InvalidStateError(f"{player} has no commitment for round {match.round}")
    if match.waiting_for:
        raise OpponentNotCommittedError(f"Waiting for {', '.join(match.waiting_for)} to commit round {match.round}")
    selection = tuple(cards)
    if not verify_selection(selection, commitment):
        raise CardVerificationFailedError(f"Revealed cards do not match {player}'s commitment")
    if match.revealed(player) is not None:
        raise AlreadyRevealedError(f"{player} already revealed cards for round {match.round}")
    if len(selection) != slots:
        raise InvalidSelectionError(f"Expected {slots} cards, got {len(selection)}")
    return selection


def record_reveal(match: Match, player: str, selection: tuple[int, ...]) -> Match:
    return match.model_copy(
        update={"cards_played": set_round_entry(match.cards_played, match.round, player, selection)},
    )


def both_revealed(match: Match) -> bool:
    played = match.cards_played.get(match.round, {})
    return all(player in played for player in match.players)


def void_commitment(match: Match, player: str) -> Match:
    """Drop a rejected commitment so the player can commit again this round."""
    waiting = tuple(p for p in match.players if p in match.waiting_for or p == player)
    return match.model_copy(
        update={
            "card_hashes": drop_round_entry(match.card_hashes, match.round, player),
            "waiting_for": waiting,
        },
    )


def sealed_view(match: Match) -> Match:
    """Copy of the match without the unresolved round's revealed selections."""
    if match.is_completed or match.round not in match.cards_played:
        return match
    played = {number: entry for number, entry in match.cards_played.items() if number != match.round}
    return match.model_copy(update={"cards_played": played})
