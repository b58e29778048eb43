"""Typed domain exceptions for match, wager and ledger rule violations.

All rule violations raise subclasses of ArenaError rather than raw
ValueError. Each category maps to one failure class callers can
recover from; the service boundary (ArenaService) converts them into
ActionResult failures. RewardTableMissingError is the one exception
the boundary lets propagate.
"""

from typing import ClassVar

from arena.logic.enums import ErrorCode


class ArenaError(Exception):
    """Base exception for arena rule violations."""

    code: ClassVar[ErrorCode] = ErrorCode.INVALID_STATE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# --- not found -------------------------------------------------------------


class NotFoundError(ArenaError):
    """A match, wager, transaction, player or card does not exist."""


class MatchNotFoundError(NotFoundError):
    code = ErrorCode.MATCH_NOT_FOUND


class WagerNotFoundError(NotFoundError):
    code = ErrorCode.WAGER_NOT_FOUND


class BetTransactionNotFoundError(NotFoundError):
    code = ErrorCode.BET_TRANSACTION_NOT_FOUND


class PlayerNotFoundError(NotFoundError):
    code = ErrorCode.PLAYER_NOT_FOUND


class CardNotFoundError(NotFoundError):
    code = ErrorCode.CARD_NOT_FOUND


# --- invalid state ---------------------------------------------------------


class InvalidStateError(ArenaError):
    """The match or wager is in the wrong state for the requested action."""


class MatchNotActiveError(InvalidStateError):
    code = ErrorCode.MATCH_NOT_ACTIVE


class InvalidTransitionError(InvalidStateError):
    """A status change that the transition table does not allow."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, *, machine: str, current: str, target: str) -> None:
        self.machine = machine
        self.current = current
        self.target = target
        super().__init__(f"invalid {machine} transition: {current} -> {target}")


class InvalidTransactionStateError(InvalidStateError):
    code = ErrorCode.INVALID_TRANSACTION_STATE


class TransactionNotInWagerError(InvalidStateError):
    code = ErrorCode.TRANSACTION_NOT_IN_WAGER


class WagerClosedError(InvalidStateError):
    code = ErrorCode.WAGER_CLOSED


class WagerTimedOutError(InvalidStateError):
    """The betting timer ran out before the action; the opponent won by forfeit."""

    code = ErrorCode.WAGER_TIMED_OUT

    def __init__(self, *, winner: str, elapsed_seconds: float) -> None:
        self.winner = winner
        self.elapsed_seconds = elapsed_seconds
        super().__init__(f"Bet time limit exceeded. {winner} wins by forfeit")


class InvalidAmountError(InvalidStateError):
    code = ErrorCode.INVALID_AMOUNT


class InvalidSelectionError(InvalidStateError):
    code = ErrorCode.INVALID_SELECTION


class SelectionMismatchError(InvalidStateError):
    """A surviving card was not replayed at its slot."""

    code = ErrorCode.SELECTION_MISMATCH


class AlreadyCommittedError(InvalidStateError):
    code = ErrorCode.ALREADY_COMMITTED


class AlreadyRevealedError(InvalidStateError):
    code = ErrorCode.ALREADY_REVEALED


class OpponentNotCommittedError(InvalidStateError):
    """A reveal arrived before every player committed for the round."""

    code = ErrorCode.OPPONENT_NOT_COMMITTED


class PlayerBusyError(InvalidStateError):
    """The player is already seated in another active match."""

    code = ErrorCode.PLAYER_BUSY


class ConcurrentModificationError(InvalidStateError):
    """A conditional write lost against a newer version of the same record."""

    code = ErrorCode.CONCURRENT_MODIFICATION


# --- unauthorized ----------------------------------------------------------


class UnauthorizedError(ArenaError):
    """The acting player is not allowed to perform the action."""


class SelfActionNotAllowedError(UnauthorizedError):
    code = ErrorCode.SELF_ACTION_NOT_ALLOWED


class InvalidSignatureError(UnauthorizedError):
    code = ErrorCode.INVALID_SIGNATURE


class PlayerNotInMatchError(UnauthorizedError):
    code = ErrorCode.PLAYER_NOT_IN_MATCH


# --- economy, configuration and verification -------------------------------


class InsufficientBalanceError(ArenaError):
    code = ErrorCode.INSUFFICIENT_BALANCE


class ConfigMissingError(ArenaError):
    """Required configuration is missing."""


class RewardConfigMissingError(ConfigMissingError):
    """No reward row exists for the requested rank tier."""

    code = ErrorCode.REWARD_CONFIG_MISSING


class RewardTableMissingError(RewardConfigMissingError):
    """The reward table has no rows at all; settlement cannot proceed."""


class VerificationFailedError(ArenaError):
    """A revealed value does not match its commitment."""


class CardVerificationFailedError(VerificationFailedError):
    code = ErrorCode.CARD_VERIFICATION_FAILED


class EnergyExceededError(ArenaError):
    """The selected cards cost more energy than the round budget."""

    code = ErrorCode.ENERGY_EXCEEDED

    def __init__(self, *, player: str, cost: int, budget: int) -> None:
        self.player = player
        self.cost = cost
        self.budget = budget
        super().__init__(f"{player} selected cards costing {cost} energy with only {budget} available")
