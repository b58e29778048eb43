"""
Immutable state update utilities using Pydantic model_copy.

Provides helper functions for the nested-dict updates on frozen match and
wager models. These functions never mutate the input state - they always
return new state objects with the requested changes applied.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from arena.logic.state import (
    BetTransactionRef,
    Match,
    PlayerStats,
    Wager,
    WagerPlayerStats,
)

if TYPE_CHECKING:
    from datetime import datetime

    from arena.logic.enums import BetTransactionStatus, PlayerBetStatus

T = TypeVar("T")

_PLAYER_STATS_FIELDS = set(PlayerStats.model_fields)


def update_player_stats(match: Match, player: str, **updates: object) -> Match:
    """
    Return new match with one player's combat stats updated.

    Args:
        match: Current match state
        player: Username whose stats change
        **updates: Fields to update on the player's stats

    Returns:
        New Match with updated player stats

    Raises:
        ValueError: If the player is not in the match or update fields are invalid

    """
    if not match.has_player(player):
        raise ValueError(f"{player} is not in match {match.match_id}")
    invalid_fields = set(updates) - _PLAYER_STATS_FIELDS
    if invalid_fields:
        raise ValueError(f"Invalid player stats fields: {invalid_fields}")
    stats = dict(match.player_stats)
    stats[player] = match.player_stats[player].model_copy(update=updates)
    return match.model_copy(update={"player_stats": stats})


def set_round_entry(
    table: dict[int, dict[str, T]], round_number: int, player: str, value: T
) -> dict[int, dict[str, T]]:
    """Return a copy of a round-keyed table with ``table[round][player] = value``."""
    rebuilt = dict(table)
    rebuilt[round_number] = {**table.get(round_number, {}), player: value}
    return rebuilt


def drop_round_entry(table: dict[int, dict[str, T]], round_number: int, player: str) -> dict[int, dict[str, T]]:
    """Return a copy of a round-keyed table without ``table[round][player]``."""
    rebuilt = dict(table)
    entries = {key: value for key, value in table.get(round_number, {}).items() if key != player}
    if entries:
        rebuilt[round_number] = entries
    else:
        rebuilt.pop(round_number, None)
    return rebuilt


def touch_match(match: Match, now: datetime) -> Match:
    """Return new match with ``updated_at`` moved to now."""
    return match.model_copy(update={"updated_at": now})


def set_player_bet_status(wager: Wager, player: str, status: PlayerBetStatus) -> Wager:
    """
    Return new wager with one player's ladder status replaced.

    Args:
        wager: Current wager state
        player: Username whose status changes
        status: New status

    Returns:
        New Wager with the player's status set

    """
    stats = dict(wager.player_stats)
    stats[player] = WagerPlayerStats(status=status)
    return wager.model_copy(update={"player_stats": stats})


def append_transaction_ref(wager: Wager, ref: BetTransactionRef) -> Wager:
    """Return new wager with a transaction mirror appended."""
    return wager.model_copy(update={"bet_transactions": (*wager.bet_transactions, ref)})


def set_transaction_ref_status(wager: Wager, transaction_id: str, status: BetTransactionStatus) -> Wager:
    """Return new wager with the mirror of one transaction moved to ``status``."""
    refs = tuple(
        ref.model_copy(update={"status": status}) if ref.transaction_id == transaction_id else ref
        for ref in wager.bet_transactions
    )
    return wager.model_copy(update={"bet_transactions": refs})


def add_to_stakes(wager: Wager, amount: float) -> Wager:
    """Return new wager with ``amount`` added to both stakes and twice into the pool."""
    return wager.model_copy(
        update={
            "player1_wager": wager.player1_wager + amount,
            "player2_wager": wager.player2_wager + amount,
            "total_pool": wager.total_pool + amount * 2,
        },
    )
