"""
Betting ladder state machine.

Every function takes frozen snapshots and returns new ones; none of them
move money. The returned ``LadderStep.debit`` tells the caller how much to
escrow from the acting player before the new state is persisted.

Money model:
- A bet or raise is escrowed (debited) when placed.
- A call debits the caller the bet amount and moves both sides' share into
  the pot (both stakes grow by the amount, the pool by twice the amount).
- A raise settles the referenced bet like a call and escrows a new bet.
- Escrow still pending when the ladder closes goes back to its owner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from arena.logic.enums import (
    BetTransactionStatus,
    BetType,
    EndReason,
    PlayerBetStatus,
    WagerStatus,
)
from arena.logic.exceptions import (
    InvalidAmountError,
    InvalidStateError,
    InvalidTransactionStateError,
    PlayerNotInMatchError,
    SelfActionNotAllowedError,
    TransactionNotInWagerError,
    WagerClosedError,
    WagerTimedOutError,
)
from arena.logic.rounds import close_match
from arena.logic.state import BetTransaction, BetTransactionRef
from arena.logic.state_utils import (
    add_to_stakes,
    append_transaction_ref,
    set_player_bet_status,
    set_transaction_ref_status,
)
from arena.logic.transitions import ensure_transition

if TYPE_CHECKING:
    from datetime import datetime

    from arena.logic.state import Match, Wager

CHECK_MESSAGE = "checked successfully"
BET_MESSAGE = "Wager placed successfully"
CALL_MESSAGE = "Bet Called"
RAISE_MESSAGE = "Bet Raised"
FOLD_MESSAGE = "Bet Folded"


class LadderStep(NamedTuple):
    """New snapshots after one ladder action."""

    match: Match
    wager: Wager
    transactions: tuple[BetTransaction, ...] = ()  # created or updated, to persist
    debit: float = 0.0  # escrow taken from the acting player
    refunds: tuple[tuple[str, float], ...] = ()  # escrow returned when the ladder closes
    message: str = ""


def elapsed_seconds(wager: Wager, now: datetime) -> float:
    return (now - wager.last_bet_time).total_seconds()


def is_expired(wager: Wager, now: datetime) -> bool:
    """Strictly more than the limit has passed since the last action."""
    return elapsed_seconds(wager, now) > wager.bet_time_limit


def time_remaining(wager: Wager, now: datetime) -> float:
    return max(0.0, wager.bet_time_limit - elapsed_seconds(wager, now))


def require_participant(wager: Wager, player: str) -> None:
    if not wager.has_player(player):
        raise PlayerNotInMatchError(f"{player} is not a player in match {wager.match_id}")


def require_open(wager: Wager) -> None:
    if wager.is_closed:
        raise WagerClosedError(f"Wager for match {wager.match_id} is {wager.status}")


def timeout_error(wager: Wager, actor: str, now: datetime) -> WagerTimedOutError | None:
    """The error to raise when the actor's request arrives after the limit, else None."""
    if wager.is_closed or not is_expired(wager, now):
        return None
    return WagerTimedOutError(winner=wager.opponent(actor), elapsed_seconds=elapsed_seconds(wager, now))


def outstanding_escrow(wager: Wager) -> tuple[tuple[str, float], ...]:
    """Amounts escrowed by still-pending bets, per owner, in slot order."""
    owed = {player: 0.0 for player in wager.players}
    for ref in wager.pending_transactions():
        owed[ref.player] += ref.amount
    return tuple((player, amount) for player, amount in owed.items() if amount > 0)


def _validate_amount(wager: Wager, amount: float) -> None:
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {amount}")
    if wager.max_wager is not None and amount > wager.max_wager:
        raise InvalidAmountError(f"Amount {amount} exceeds the maximum wager of {wager.max_wager}")


def _touch(wager: Wager, now: datetime) -> Wager:
    return wager.model_copy(update={"last_bet_time": now})


def _grow_match_pool(match: Match, amount: float) -> Match:
    wagered = {player: match.player_wagered.get(player, 0.0) + amount for player in match.players}
    return match.model_copy(
        update={"total_mana_pool": match.total_mana_pool + amount * 2, "player_wagered": wagered},
    )


def _move_player(wager: Wager, player: str, target: PlayerBetStatus) -> Wager:
    return set_player_bet_status(wager, player, ensure_transition(wager.player_status(player), target))


def _move_ladder(wager: Wager, target: WagerStatus) -> Wager:
    return wager.model_copy(update={"status": ensure_transition(wager.status, target)})


def check(match: Match, wager: Wager, player: str, now: datetime) -> LadderStep:
    if wager.player_status(player) != PlayerBetStatus.PENDING:
        raise InvalidStateError(f"{player} cannot check while {wager.player_status(player)}")
    updated = _touch(_move_player(wager, player, PlayerBetStatus.CHECKED), now)
    return LadderStep(match=match, wager=updated, message=CHECK_MESSAGE)


def bet(
    match: Match,
    wager: Wager,
    player: str,
    amount: float,
    signature: str,
    transaction_id: str,
    now: datetime,
) -> LadderStep:
    _validate_amount(wager, amount)
    if wager.pending_transactions():
        raise InvalidStateError("Another bet is still waiting for a response")
    transaction = BetTransaction(
        transaction_id=transaction_id,
        match_id=wager.match_id,
        player=player,
        round=match.round,
        amount=amount,
        signature=signature,
        bet_type=BetType.BET,
        created_at=now,
    )
    ref = BetTransactionRef(
        transaction_id=transaction_id,
        player=player,
        status=BetTransactionStatus.PENDING,
        amount=amount,
        bet_type=BetType.BET,
        round=match.round,
    )
    updated = _touch(append_transaction_ref(_move_player(wager, player, PlayerBetStatus.BET), ref), now)
    return LadderStep(match=match, wager=updated, transactions=(transaction,), debit=amount, message=BET_MESSAGE)


def validate_counter(wager: Wager, transaction: BetTransaction, player: str) -> None:
    """Preconditions shared by call, raise and fold."""
    if transaction.match_id != wager.match_id or wager.find_transaction(transaction.transaction_id) is None:
        raise TransactionNotInWagerError(f"Transaction {transaction.transaction_id} is not part of this wager")
    if transaction.status != BetTransactionStatus.PENDING:
        raise InvalidTransactionStateError(f"Transaction {transaction.transaction_id} is already {transaction.status}")
    if transaction.player == player:
        raise SelfActionNotAllowedError("Players cannot respond to their own bet")


def _respond(
    transaction: BetTransaction,
    status: BetTransactionStatus,
    responder: str,
    signature: str,
) -> BetTransaction:
    return transaction.model_copy(
        update={
            "status": ensure_transition(transaction.status, status),
            "responder": responder,
            "responder_signature": signature,
        },
    )


def call(
    match: Match,
    wager: Wager,
    transaction: BetTransaction,
    player: str,
    signature: str,
    now: datetime,
) -> LadderStep:
    validate_counter(wager, transaction, player)
    answered = _respond(transaction, BetTransactionStatus.CALLED, player, signature)
    updated = set_transaction_ref_status(wager, transaction.transaction_id, BetTransactionStatus.CALLED)
    updated = add_to_stakes(updated, transaction.amount)
    updated = _move_ladder(updated, WagerStatus.CALLED)
    updated = _touch(_move_player(updated, player, PlayerBetStatus.CALLED), now)
    return LadderStep(
        match=_grow_match_pool(match, transaction.amount),
        wager=updated,
        transactions=(answered,),
        debit=transaction.amount,
        message=CALL_MESSAGE,
    )


def raise_bet(
    match: Match,
    wager: Wager,
    transaction: BetTransaction,
    player: str,
    raise_amount: float,
    signature: str,
    new_transaction_id: str,
    now: datetime,
) -> LadderStep:
    validate_counter(wager, transaction, player)
    _validate_amount(wager, raise_amount)
    answered = _respond(transaction, BetTransactionStatus.RAISED, player, signature)
    raised = BetTransaction(
        transaction_id=new_transaction_id,
        match_id=wager.match_id,
        player=player,
        round=match.round,
        amount=raise_amount,
        signature=signature,
        bet_type=BetType.RAISE,
        created_at=now,
    )
    ref = BetTransactionRef(
        transaction_id=new_transaction_id,
        player=player,
        status=BetTransactionStatus.PENDING,
        amount=raise_amount,
        bet_type=BetType.RAISE,
        round=match.round,
    )
    updated = set_transaction_ref_status(wager, transaction.transaction_id, BetTransactionStatus.RAISED)
    updated = append_transaction_ref(updated, ref)
    updated = add_to_stakes(updated, transaction.amount)
    updated = _move_ladder(updated, WagerStatus.RAISED)
    updated = _touch(_move_player(updated, player, PlayerBetStatus.RAISED), now)
    return LadderStep(
        match=_grow_match_pool(match, transaction.amount),
        wager=updated,
        transactions=(answered, raised),
        debit=transaction.amount + raise_amount,
        message=RAISE_MESSAGE,
    )


def fold(
    match: Match,
    wager: Wager,
    transaction: BetTransaction,
    player: str,
    signature: str,
    now: datetime,
) -> LadderStep:
    """The folder concedes: the bettor wins both the wager and the match."""
    validate_counter(wager, transaction, player)
    winner = transaction.player
    answered = _respond(transaction, BetTransactionStatus.FOLDED, player, signature)
    updated = set_transaction_ref_status(wager, transaction.transaction_id, BetTransactionStatus.FOLDED)
    updated = _move_player(updated, player, PlayerBetStatus.FOLDED)
    updated = _move_ladder(updated, WagerStatus.FOLDED)
    updated = _touch(updated.model_copy(update={"winner": winner}), now)
    closed = close_match(match, winner, EndReason.FOLDED).model_copy(update={"updated_at": now})
    return LadderStep(
        match=closed,
        wager=updated,
        transactions=(answered,),
        refunds=outstanding_escrow(wager),
        message=FOLD_MESSAGE,
    )


def forfeit(match: Match, wager: Wager, winner: str, now: datetime) -> LadderStep:
    """Close wager and match in favour of ``winner`` after the betting timer ran out."""
    updated = _move_ladder(wager, WagerStatus.FORFEITED).model_copy(update={"winner": winner})
    closed = close_match(match, winner, EndReason.FORFEITED).model_copy(update={"updated_at": now})
    return LadderStep(
        match=closed,
        wager=updated,
        refunds=outstanding_escrow(wager),
        message=f"Bet time limit exceeded. {winner} wins by forfeit",
    )


def settle(wager: Wager, winner: str | None) -> Wager:
    """Close the ladder after the match ended by combat, the round cap or surrender."""
    return _move_ladder(wager, WagerStatus.SETTLED).model_copy(update={"winner": winner})
