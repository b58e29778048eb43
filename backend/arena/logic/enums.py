"""
String enum definitions for match, wager and settlement concepts.
"""

from enum import StrEnum


class MatchType(StrEnum):
    """Match type, fixed at creation; decides the staked currency."""

    RANKED = "ranked"  # mana
    WAGERED = "wagered"  # reward token


class MatchStatus(StrEnum):
    ACTIVE = "active"
    DECKS_SUBMITTED = "decks_submitted"
    COMPLETED = "completed"


class EndReason(StrEnum):
    """Why a completed match ended."""

    BASE_DESTROYED = "base_destroyed"
    ROUND_CAP = "round_cap"
    DRAW = "draw"
    FOLDED = "folded"
    FORFEITED = "forfeited"
    SURRENDERED = "surrendered"


class TiePolicy(StrEnum):
    """How equal base health at the round cap is resolved."""

    DRAW = "draw"  # no winner, stakes refunded
    SLOT_TWO = "slot_two"  # player in slot 2 wins
    COIN_FLIP = "coin_flip"  # deterministic per-match flip


class WagerStatus(StrEnum):
    """Ladder-level status mirroring the latest action."""

    PENDING = "pending"
    CALLED = "called"
    RAISED = "raised"
    FOLDED = "folded"
    FORFEITED = "forfeited"
    SETTLED = "settled"


class PlayerBetStatus(StrEnum):
    """A single player's position on the betting ladder for the current round."""

    PENDING = "pending"
    CHECKED = "checked"
    BET = "bet"
    CALLED = "called"
    RAISED = "raised"
    FOLDED = "folded"


class BetType(StrEnum):
    BET = "bet"
    RAISE = "raise"


class BetTransactionStatus(StrEnum):
    PENDING = "pending"
    CALLED = "called"
    RAISED = "raised"
    FOLDED = "folded"


class WagerAction(StrEnum):
    """Actions a player can take on the betting ladder."""

    CHECK = "check"
    BET = "bet"
    CALL = "call"
    RAISE = "raise"
    FOLD = "fold"


class ErrorCode(StrEnum):
    """Stable error codes returned in action results."""

    MATCH_NOT_FOUND = "match_not_found"
    WAGER_NOT_FOUND = "wager_not_found"
    BET_TRANSACTION_NOT_FOUND = "bet_transaction_not_found"
    PLAYER_NOT_FOUND = "player_not_found"
    CARD_NOT_FOUND = "card_not_found"
    MATCH_NOT_ACTIVE = "match_not_active"
    INVALID_STATE = "invalid_state"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_TRANSACTION_STATE = "invalid_transaction_state"
    TRANSACTION_NOT_IN_WAGER = "transaction_not_in_wager"
    WAGER_CLOSED = "wager_closed"
    WAGER_TIMED_OUT = "wager_timed_out"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_SELECTION = "invalid_selection"
    SELECTION_MISMATCH = "selection_mismatch"
    ALREADY_COMMITTED = "already_committed"
    ALREADY_REVEALED = "already_revealed"
    OPPONENT_NOT_COMMITTED = "opponent_not_committed"
    PLAYER_BUSY = "player_busy"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    SELF_ACTION_NOT_ALLOWED = "self_action_not_allowed"
    INVALID_SIGNATURE = "invalid_signature"
    PLAYER_NOT_IN_MATCH = "player_not_in_match"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    REWARD_CONFIG_MISSING = "reward_config_missing"
    CARD_VERIFICATION_FAILED = "card_verification_failed"
    ENERGY_EXCEEDED = "energy_exceeded"
