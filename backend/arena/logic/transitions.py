"""
Explicit transition tables for every status field.

Each table maps a status to the set of statuses it may move to. Anything
missing from a table is rejected with InvalidTransitionError instead of
trusting callers to check the current status themselves.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TypeVar

from arena.logic.enums import BetTransactionStatus, MatchStatus, PlayerBetStatus, WagerStatus
from arena.logic.exceptions import InvalidTransitionError

S = TypeVar("S", bound=StrEnum)

MATCH_TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.ACTIVE: frozenset({MatchStatus.DECKS_SUBMITTED, MatchStatus.COMPLETED}),
    MatchStatus.DECKS_SUBMITTED: frozenset({MatchStatus.ACTIVE, MatchStatus.COMPLETED}),
    MatchStatus.COMPLETED: frozenset(),
}

_OPEN_LADDER = frozenset(
    {
        WagerStatus.PENDING,
        WagerStatus.CALLED,
        WagerStatus.RAISED,
        WagerStatus.FOLDED,
        WagerStatus.FORFEITED,
        WagerStatus.SETTLED,
    },
)

WAGER_TRANSITIONS: dict[WagerStatus, frozenset[WagerStatus]] = {
    WagerStatus.PENDING: _OPEN_LADDER,
    WagerStatus.CALLED: _OPEN_LADDER,
    WagerStatus.RAISED: _OPEN_LADDER,
    WagerStatus.FOLDED: frozenset(),
    WagerStatus.FORFEITED: frozenset(),
    WagerStatus.SETTLED: frozenset(),
}

_AFTER_ACTION = frozenset(
    {
        PlayerBetStatus.PENDING,  # round reset
        PlayerBetStatus.BET,
        PlayerBetStatus.CALLED,
        PlayerBetStatus.RAISED,
        PlayerBetStatus.FOLDED,
    },
)

PLAYER_BET_TRANSITIONS: dict[PlayerBetStatus, frozenset[PlayerBetStatus]] = {
    PlayerBetStatus.PENDING: _AFTER_ACTION | {PlayerBetStatus.CHECKED},
    PlayerBetStatus.CHECKED: _AFTER_ACTION,
    PlayerBetStatus.BET: _AFTER_ACTION,
    PlayerBetStatus.CALLED: _AFTER_ACTION,
    PlayerBetStatus.RAISED: _AFTER_ACTION,
    PlayerBetStatus.FOLDED: frozenset(),
}

TRANSACTION_TRANSITIONS: dict[BetTransactionStatus, frozenset[BetTransactionStatus]] = {
    BetTransactionStatus.PENDING: frozenset(
        {BetTransactionStatus.CALLED, BetTransactionStatus.RAISED, BetTransactionStatus.FOLDED},
    ),
    BetTransactionStatus.CALLED: frozenset(),
    BetTransactionStatus.RAISED: frozenset(),
    BetTransactionStatus.FOLDED: frozenset(),
}

_TABLES: dict[type[StrEnum], tuple[str, dict]] = {
    MatchStatus: ("match", MATCH_TRANSITIONS),
    WagerStatus: ("wager", WAGER_TRANSITIONS),
    PlayerBetStatus: ("player bet", PLAYER_BET_TRANSITIONS),
    BetTransactionStatus: ("bet transaction", TRANSACTION_TRANSITIONS),
}


def can_transition(current: S, target: S) -> bool:
    _, table = _TABLES[type(current)]
    return target in table[current]


def ensure_transition(current: S, target: S) -> S:
    """Return ``target`` if the move from ``current`` is allowed, else raise InvalidTransitionError."""
    machine, table = _TABLES[type(current)]
    if target not in table[current]:
        raise InvalidTransitionError(machine=machine, current=current.value, target=target.value)
    return target
