"""
Arena service: the single entry point for match, round and wager actions.

Every mutating operation for a match runs under that match's lock, reads
one snapshot of the match and wager, computes the new snapshots with the
pure logic modules and persists them with one conditional write. Ledger
debits happen before the write and are refunded if it fails; credits
happen after it.

Domain errors are converted into failed ActionResults here. The only
exception that escapes is RewardTableMissingError.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from arena.logic import commit_reveal, wagering
from arena.logic.action_result import ActionResult, failed, ok
from arena.logic.battle import simulate_round
from arena.logic.economy import buy_in, normalize_rank_tier
from arena.logic.enums import EndReason, MatchStatus, MatchType, WagerAction
from arena.logic.exceptions import (
    ArenaError,
    BetTransactionNotFoundError,
    CardNotFoundError,
    EnergyExceededError,
    InvalidAmountError,
    InvalidSelectionError,
    InvalidSignatureError,
    InvalidStateError,
    MatchNotActiveError,
    MatchNotFoundError,
    PlayerNotInMatchError,
    RewardTableMissingError,
    SelectionMismatchError,
    WagerNotFoundError,
    WagerTimedOutError,
)
from arena.logic.resolution import build_rewards, pay_out
from arena.logic.rounds import close_match, conclude_round, reset_wager_for_round, validate_selection
from arena.logic.settings import MatchSettings
from arena.logic.signatures import action_payload
from arena.logic.state import DeckCommitment, Match, PlayerStats, Wager, WagerPlayerStats, currency_for
from arena.logic.transitions import ensure_transition
from arena.session.locks import MatchLocks
from arena.session.match_index import ActiveMatchIndex
from shared.logging import bind_match_context, clear_match_context

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from arena.logic.cards import CardCatalog
    from arena.logic.ledger import EconomyLedger
    from arena.logic.signatures import SignatureVerifier
    from arena.logic.state import BetTransaction
    from arena.storage.match_store import MatchStore
    from shared.dal.models import Currency, LedgerEntry

logger = structlog.get_logger()

BUY_IN_REASON = "match buy-in"
BUY_IN_REFUND_REASON = "match buy-in refund"
ESCROW_REASON = "bet escrow"
ESCROW_REFUND_REASON = "bet escrow refund"

# Selection rule violations void the commitment so the player can commit again.
_REJECTED_SELECTION = (CardNotFoundError, EnergyExceededError, InvalidSelectionError, SelectionMismatchError)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class ArenaService:
    def __init__(
        self,
        *,
        store: MatchStore,
        ledger: EconomyLedger,
        catalog: CardCatalog,
        verifier: SignatureVerifier,
        settings: MatchSettings | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._catalog = catalog
        self._verifier = verifier
        self._settings = settings or MatchSettings()
        self._clock = clock
        self._new_id = id_factory
        self._locks = MatchLocks()
        self._active = ActiveMatchIndex()
        self._finished: set[str] = set()

    @property
    def settings(self) -> MatchSettings:
        return self._settings

    @property
    def active_matches(self) -> ActiveMatchIndex:
        return self._active

    # --- plumbing ---

    async def _run(
        self,
        operation: str,
        match_id: str,
        player: str | None,
        action: Callable[[], Awaitable[ActionResult]],
    ) -> ActionResult:
        bind_match_context(match_id, player)
        try:
            async with self._locks.hold(match_id):
                result = await action()
            logger.info("arena action applied", operation=operation)
            return result
        except RewardTableMissingError:
            logger.exception("reward table missing, settlement aborted", operation=operation)
            raise
        except WagerTimedOutError as exc:
            logger.warning("wager timed out", operation=operation, winner=exc.winner)
            return failed(exc, winner=exc.winner)
        except ArenaError as exc:
            logger.warning("arena action rejected", operation=operation, error_code=exc.code, error_message=exc.message)
            return failed(exc)
        finally:
            if match_id in self._finished:
                self._finished.discard(match_id)
                self._locks.discard(match_id)
            clear_match_context()

    async def _require_match(self, match_id: str) -> Match:
        match = await self._store.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return match

    async def _require_wager(self, match_id: str) -> Wager:
        wager = await self._store.get_wager(match_id)
        if wager is None:
            raise WagerNotFoundError(f"Wager for match {match_id} not found")
        return wager

    @staticmethod
    def _require_player(match: Match, player: str) -> None:
        if not match.has_player(player):
            raise PlayerNotInMatchError(f"{player} is not a player in match {match.match_id}")

    def _verify(self, player: str, payload: dict[str, Any], signature: str) -> None:
        if not self._verifier.verify(player, payload, signature):
            raise InvalidSignatureError(f"Invalid signature from {player}")

    async def _save(
        self,
        match: Match,
        wager: Wager,
        transactions: Iterable[BetTransaction] = (),
        *,
        expected: Match,
    ) -> Match:
        return await self._store.save(match, wager, transactions, expected=expected)

    async def _save_with_debit(
        self,
        player: str,
        amount: float,
        currency: Currency,
        match: Match,
        wager: Wager,
        transactions: Iterable[BetTransaction] = (),
        *,
        expected: Match,
    ) -> Match:
        """Escrow ``amount`` from a player, then persist; the escrow is returned if the write fails."""
        if amount > 0:
            await self._ledger.deduct_balance(player, amount, currency, ESCROW_REASON, match.match_id)
        try:
            return await self._save(match, wager, transactions, expected=expected)
        except Exception:
            if amount > 0:
                await self._ledger.credit_balance(player, amount, currency, ESCROW_REFUND_REASON, match.match_id)
            raise

    async def _finish(
        self,
        closed: Match,
        wager: Wager,
        *,
        expected: Match,
        full: bool,
        refunds: Iterable[tuple[str, float]] = (),
        transactions: Iterable[BetTransaction] = (),
    ) -> Match:
        """Persist a completed match with its settlement record, then pay it out."""
        reward = 0.0
        if full and closed.winner is not None:
            reward = await self._ledger.lookup_reward(closed.rank_tier)
        rewards = build_rewards(closed, wager, reward=reward, full=full)
        saved = await self._save(closed.model_copy(update={"rewards": rewards}), wager, transactions, expected=expected)
        await self._active.release(saved.players, saved.match_id)
        self._finished.add(saved.match_id)
        await pay_out(self._ledger, saved, wager, rewards, refunds)
        return saved

    # --- match intake ---

    async def open_match(
        self,
        match_id: str,
        player1: str,
        player2: str,
        rank_tier: str,
        match_type: MatchType,
        *,
        stake: float | None = None,
        bet_time_limit: float | None = None,
        max_wager: float | None = None,
    ) -> ActionResult:
        """Accept a formed match from matchmaking and take both buy-ins."""

        async def action() -> ActionResult:
            if player1.casefold() == player2.casefold():
                raise InvalidStateError("A match needs two different players")
            if await self._store.get_match(match_id) is not None:
                raise InvalidStateError(f"Match {match_id} already exists")
            for player in (player1, player2):
                await self._ledger.get_player(player)
            amount = float(buy_in(rank_tier) if stake is None else stake)
            if amount < 0:
                raise InvalidAmountError(f"Stake must be non-negative, got {amount}")
            if max_wager is not None and max_wager <= 0:
                raise InvalidAmountError(f"Maximum wager must be positive, got {max_wager}")

            players = (player1, player2)
            currency = currency_for(match_type)
            await self._active.claim(players, match_id)
            taken: list[LedgerEntry] = []
            try:
                if amount > 0:
                    for player in players:
                        taken.append(
                            await self._ledger.deduct_balance(player, amount, currency, BUY_IN_REASON, match_id),
                        )
                match, wager = self._new_match(
                    match_id, players, rank_tier, match_type, amount, bet_time_limit, max_wager
                )
                await self._store.create(match, wager)
            except BaseException:
                for entry in taken:
                    await self._ledger.credit_balance(entry.username, amount, currency, BUY_IN_REFUND_REASON, match_id)
                await self._active.release(players, match_id)
                raise
            logger.info("match opened", players=players, rank_tier=match.rank_tier, stake=amount, currency=currency)
            return ok("Match created", match_id=match_id, stake=amount, currency=currency)

        return await self._run("open_match", match_id, None, action)

    def _new_match(
        self,
        match_id: str,
        players: tuple[str, str],
        rank_tier: str,
        match_type: MatchType,
        stake: float,
        bet_time_limit: float | None,
        max_wager: float | None,
    ) -> tuple[Match, Wager]:
        now = self._clock()
        stats = PlayerStats(energy=self._settings.energy_budget(1), base_health=self._settings.starting_base_health)
        match = Match(
            match_id=match_id,
            players=players,
            rank_tier=normalize_rank_tier(rank_tier),
            match_type=match_type,
            waiting_for=players,
            player_stats={player: stats for player in players},
            total_mana_pool=stake * 2,
            player_wagered={player: stake for player in players},
            created_at=now,
            updated_at=now,
        )
        wager = Wager(
            match_id=match_id,
            player1=players[0],
            player2=players[1],
            currency=currency_for(match_type),
            player1_wager=stake,
            player2_wager=stake,
            total_pool=stake * 2,
            max_wager=max_wager,
            player_stats={player: WagerPlayerStats() for player in players},
            last_bet_time=now,
            bet_time_limit=bet_time_limit if bet_time_limit is not None else self._settings.bet_time_limit_seconds,
            created_at=now,
        )
        return match, wager

    async def restore_active_index(self) -> int:
        """Seat players of every unfinished stored match in the active-match index."""
        restored = 0
        for match in await self._store.list_matches():
            if match.status != MatchStatus.COMPLETED:
                await self._active.claim(match.players, match.match_id)
                restored += 1
        return restored

    async def submit_deck(
        self, match_id: str, player: str, deck_hash: str, card_hashes: Sequence[str] = ()
    ) -> ActionResult:
        """Record a player's deck commitment before the first round starts."""

        async def action() -> ActionResult:
            match = await self._require_match(match_id)
            self._require_player(match, player)
            if match.status not in (MatchStatus.ACTIVE, MatchStatus.DECKS_SUBMITTED):
                raise MatchNotActiveError(f"Match {match_id} is {match.status}")
            if match.round != 1 or match.card_hashes.get(1):
                raise InvalidStateError("Decks can only be submitted before the first commitment")
            if player in match.decks:
                raise InvalidStateError(f"{player} already submitted a deck")
            if not deck_hash:
                raise InvalidSelectionError("Deck hash must not be empty")

            decks = {**match.decks, player: DeckCommitment(deck_hash=deck_hash, card_hashes=tuple(card_hashes))}
            status = match.status
            if all(p in decks for p in match.players):
                status = ensure_transition(status, MatchStatus.DECKS_SUBMITTED)
            updated = match.model_copy(update={"decks": decks, "status": status, "updated_at": self._clock()})
            wager = await self._require_wager(match_id)
            saved = await self._save(updated, wager, expected=match)
            return ok("Deck submitted", status=saved.status)

        return await self._run("submit_deck", match_id, player, action)

    # --- commit / reveal ---

    async def commit_cards(self, match_id: str, player: str, card_hash: str) -> ActionResult:
        async def action() -> ActionResult:
            match = await self._require_match(match_id)
            updated = commit_reveal.commit_cards(match, player, card_hash)
            wager = await self._require_wager(match_id)
            saved = await self._save(updated.model_copy(update={"updated_at": self._clock()}), wager, expected=match)
            return ok("Cards committed", round=saved.round, waiting_for=list(saved.waiting_for))

        return await self._run("commit_cards", match_id, player, action)

    async def reveal_cards(self, match_id: str, player: str, cards: Sequence[int], signature: str) -> ActionResult:
        """Reveal a committed selection; the second reveal of a round simulates it."""

        async def action() -> ActionResult:
            match = await self._require_match(match_id)
            self._require_player(match, player)
            payload = action_payload(match_id, "reveal", round=match.round, cards=list(cards))
            self._verify(player, payload, signature)
            selection = commit_reveal.check_reveal(match, player, cards, self._settings.slots_per_player)
            wager = await self._require_wager(match_id)
            now = self._clock()

            try:
                resolved = await self._catalog.resolve(selection)
                validate_selection(match, player, selection, resolved, self._settings)
            except _REJECTED_SELECTION:
                voided = commit_reveal.void_commitment(match, player).model_copy(update={"updated_at": now})
                await self._save(voided, wager, expected=match)
                logger.info("selection rejected, commitment voided", round=match.round)
                raise

            revealed = commit_reveal.record_reveal(match, player, selection).model_copy(update={"updated_at": now})
            if not commit_reveal.both_revealed(revealed):
                await self._save(revealed, wager, expected=match)
                return ok("Cards revealed", round=match.round, simulated=False)
            return await self._simulate(match, revealed, wager, now)

        return await self._run("reveal_cards", match_id, player, action)

    async def _simulate(self, expected: Match, match: Match, wager: Wager, now: datetime) -> ActionResult:
        played = match.round
        selections = {p: match.cards_played[played][p] for p in match.players}
        cards = await self._catalog.resolve(card_id for selection in selections.values() for card_id in selection)
        outcome = simulate_round(
            match_id=match.match_id,
            round_number=played,
            players=match.players,
            selections=selections,
            cards=cards,
            player_stats=match.player_stats,
            energy_budget=self._settings.energy_budget(played),
            survivors={p: s for p in match.players if (s := match.previous_survivors(p)) is not None},
        )
        conclusion = conclude_round(match, outcome, self._settings, now)
        logger.info("round simulated", round=played, attacks=len(outcome.history), winner=conclusion.winner)

        if conclusion.ended:
            settled = wagering.settle(wager, conclusion.winner)
            saved = await self._finish(
                conclusion.match,
                settled,
                expected=expected,
                full=True,
                refunds=wagering.outstanding_escrow(wager),
            )
            return ok(
                "Round resolved, match completed",
                round=played,
                simulated=True,
                winner=saved.winner,
                end_reason=saved.end_reason,
            )

        reset = reset_wager_for_round(wager, conclusion.match.round, now)
        saved = await self._save(conclusion.match, reset, expected=expected)
        return ok("Round resolved", round=played, simulated=True, next_round=saved.round)

    # --- wagering ---

    async def _open_ladder(
        self,
        match_id: str,
        player: str,
        signature: str,
        action: WagerAction,
        **fields: Any,
    ) -> tuple[Match, Wager, datetime]:
        """Shared preamble: lookup, participant, signature, timer, then closed check.

        The signed payload carries the ladder round, so a signature is only
        valid for the round it was made in.
        """
        wager = await self._require_wager(match_id)
        wagering.require_participant(wager, player)
        self._verify(player, action_payload(match_id, action, round=wager.round, **fields), signature)
        match = await self._require_match(match_id)
        now = self._clock()
        timeout = wagering.timeout_error(wager, player, now)
        if timeout is not None:
            step = wagering.forfeit(match, wager, timeout.winner, now)
            await self._finish(step.match, step.wager, expected=match, full=False, refunds=step.refunds)
            raise timeout
        wagering.require_open(wager)
        if match.is_completed:
            raise MatchNotActiveError(f"Match {match_id} is completed")
        return match, wager, now

    async def _transaction(self, bet_id: str) -> BetTransaction:
        transaction = await self._store.get_transaction(bet_id)
        if transaction is None:
            raise BetTransactionNotFoundError(f"BetTransaction {bet_id} not found")
        return transaction

    async def check(self, match_id: str, player: str, signature: str) -> ActionResult:
        async def action() -> ActionResult:
            match, wager, now = await self._open_ladder(match_id, player, signature, WagerAction.CHECK)
            step = wagering.check(match, wager, player, now)
            await self._save(step.match, step.wager, expected=match)
            return ok(step.message)

        return await self._run("check", match_id, player, action)

    async def bet(self, match_id: str, player: str, amount: float, signature: str) -> ActionResult:
        async def action() -> ActionResult:
            match, wager, now = await self._open_ladder(match_id, player, signature, WagerAction.BET, amount=amount)
            step = wagering.bet(match, wager, player, amount, signature, self._new_id(), now)
            await self._save_with_debit(
                player, step.debit, wager.currency, step.match, step.wager, step.transactions, expected=match
            )
            return ok(step.message, bet_id=step.transactions[0].transaction_id)

        return await self._run("bet", match_id, player, action)

    async def call(self, match_id: str, player: str, bet_id: str, signature: str) -> ActionResult:
        async def action() -> ActionResult:
            match, wager, now = await self._open_ladder(match_id, player, signature, WagerAction.CALL, bet_id=bet_id)
            step = wagering.call(match, wager, await self._transaction(bet_id), player, signature, now)
            await self._save_with_debit(
                player, step.debit, wager.currency, step.match, step.wager, step.transactions, expected=match
            )
            return ok(step.message, total_pool=step.wager.total_pool)

        return await self._run("call", match_id, player, action)

    async def raise_bet(
        self,
        match_id: str,
        player: str,
        bet_id: str,
        raise_amount: float,
        signature: str,
    ) -> ActionResult:
        async def action() -> ActionResult:
            match, wager, now = await self._open_ladder(
                match_id, player, signature, WagerAction.RAISE, bet_id=bet_id, raise_amount=raise_amount
            )
            transaction = await self._transaction(bet_id)
            step = wagering.raise_bet(match, wager, transaction, player, raise_amount, signature, self._new_id(), now)
            await self._save_with_debit(
                player, step.debit, wager.currency, step.match, step.wager, step.transactions, expected=match
            )
            return ok(step.message, bet_id=step.transactions[1].transaction_id, total_pool=step.wager.total_pool)

        return await self._run("raise_bet", match_id, player, action)

    async def fold(self, match_id: str, player: str, bet_id: str, signature: str) -> ActionResult:
        async def action() -> ActionResult:
            match, wager, now = await self._open_ladder(match_id, player, signature, WagerAction.FOLD, bet_id=bet_id)
            step = wagering.fold(match, wager, await self._transaction(bet_id), player, signature, now)
            saved = await self._finish(
                step.match,
                step.wager,
                expected=match,
                full=False,
                refunds=step.refunds,
                transactions=step.transactions,
            )
            return ok(step.message, winner=saved.winner)

        return await self._run("fold", match_id, player, action)

    async def surrender(self, match_id: str, player: str, signature: str) -> ActionResult:
        """Concede the match; the opponent wins with full settlement."""

        async def action() -> ActionResult:
            match = await self._require_match(match_id)
            self._require_player(match, player)
            self._verify(player, action_payload(match_id, "surrender"), signature)
            if match.is_completed:
                raise MatchNotActiveError(f"Match {match_id} is completed")
            wager = await self._require_wager(match_id)
            winner = match.opponent(player)
            closed = close_match(match, winner, EndReason.SURRENDERED).model_copy(update={"updated_at": self._clock()})
            saved = await self._finish(
                closed,
                wagering.settle(wager, winner),
                expected=match,
                full=True,
                refunds=wagering.outstanding_escrow(wager),
            )
            return ok(f"{player} surrendered", winner=saved.winner)

        return await self._run("surrender", match_id, player, action)

    # --- reporting ---

    async def get_match(self, match_id: str) -> ActionResult:
        """The stored match; selections revealed in the unresolved round stay hidden."""

        async def action() -> ActionResult:
            return ok("Match found", match=commit_reveal.sealed_view(await self._require_match(match_id)))

        return await self._run("get_match", match_id, None, action)

    async def get_wager_details(self, match_id: str) -> ActionResult:
        """The wager with its computed time remaining and expired flag."""

        async def action() -> ActionResult:
            wager = await self._require_wager(match_id)
            now = self._clock()
            expired = not wager.is_closed and wagering.is_expired(wager, now)
            remaining = 0.0 if wager.is_closed else wagering.time_remaining(wager, now)
            return ok("Wager found", wager=wager, time_remaining=remaining, expired=expired)

        return await self._run("get_wager_details", match_id, None, action)

    async def compliance_report(self, start: datetime, end: datetime) -> ActionResult:
        """All wagers created between ``start`` and ``end`` inclusive."""
        if end < start:
            return failed(InvalidStateError("Report end must not be before its start"))
        wagers = await self._store.list_wagers_between(start, end)
        logger.info("compliance report generated", wagers=len(wagers))
        return ok("Compliance report", wagers=wagers)

    async def get_balance(self, username: str, currency: Currency) -> ActionResult:
        try:
            balance = await self._ledger.get_balance(username, currency)
        except ArenaError as exc:
            return failed(exc)
        return ok("Balance found", balance=balance, currency=currency)

    async def get_history(self, username: str, currency: Currency) -> ActionResult:
        try:
            entries = await self._ledger.get_history(username, currency)
        except ArenaError as exc:
            return failed(exc)
        return ok("History found", entries=entries)
