"""
Immutable match and wager state models.

Every model is a frozen pydantic model. Updates go through ``model_copy``
(see ``arena.logic.state_utils``); the nested dicts are never mutated in
place, they are rebuilt and swapped in with the copy.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from arena.logic.cards import SENTINEL_CARD_ID
from arena.logic.enums import (
    BetTransactionStatus,
    BetType,
    EndReason,
    MatchStatus,
    MatchType,
    PlayerBetStatus,
    WagerStatus,
)
from shared.dal.models import Currency


def _now() -> datetime:
    return datetime.now(UTC)


def currency_for(match_type: MatchType) -> Currency:
    """Ranked matches stake mana; wagered matches stake the reward token."""
    if match_type == MatchType.RANKED:
        return Currency.MANA
    return Currency.RET


class PlayerStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    energy: int
    base_health: int


class AttackRecord(BaseModel):
    """One resolved attack in a round's battle history."""

    model_config = ConfigDict(frozen=True)

    attacker: str
    target: str
    attacker_slot: int
    attacker_card_id: int
    target_card_id: int | None  # None when the base was hit
    damage: int
    attacked_base: bool
    target_remaining_health: int  # card hp, or base health when attacked_base


class SlotSnapshot(BaseModel):
    """A card slot after a round: the surviving card and its residual health, or the sentinel."""

    model_config = ConfigDict(frozen=True)

    card_id: int = SENTINEL_CARD_ID
    hp: int = 0

    @property
    def is_empty(self) -> bool:
        return self.card_id == SENTINEL_CARD_ID


class DeckCommitment(BaseModel):
    model_config = ConfigDict(frozen=True)

    deck_hash: str
    card_hashes: tuple[str, ...] = ()


class MatchRewards(BaseModel):
    """Settlement record written once when the match resolves."""

    model_config = ConfigDict(frozen=True)

    winner: str | None
    currency: Currency
    ret_amount: float = 0.0
    ret_credited: bool = False
    pot_amount: float = 0.0
    xp_gained: int = 0
    xp_lost: int = 0


class Match(BaseModel):
    """One battle between two players, slot order significant."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    players: tuple[str, str]
    rank_tier: str
    match_type: MatchType
    round: int = Field(default=1, ge=1)
    status: MatchStatus = MatchStatus.ACTIVE

    card_hashes: dict[int, dict[str, str]] = Field(default_factory=dict)
    cards_played: dict[int, dict[str, tuple[int, ...]]] = Field(default_factory=dict)
    waiting_for: tuple[str, ...] = ()
    decks: dict[str, DeckCommitment] = Field(default_factory=dict)

    player_stats: dict[str, PlayerStats] = Field(default_factory=dict)
    battle_history: dict[int, tuple[AttackRecord, ...]] = Field(default_factory=dict)
    remaining_cards: dict[int, dict[str, tuple[SlotSnapshot, ...]]] = Field(default_factory=dict)

    winner: str | None = None
    end_reason: EndReason | None = None
    rewards: MatchRewards | None = None

    total_mana_pool: float = 0.0
    player_wagered: dict[str, float] = Field(default_factory=dict)

    version: int = 0
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def currency(self) -> Currency:
        return currency_for(self.match_type)

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    def has_player(self, player: str) -> bool:
        return player in self.players

    def slot_of(self, player: str) -> int:
        """Zero-based slot index of a player (0 = slot 1, 1 = slot 2)."""
        return self.players.index(player)

    def opponent(self, player: str) -> str:
        first, second = self.players
        if player == first:
            return second
        if player == second:
            return first
        raise ValueError(f"{player} is not in match {self.match_id}")

    def commitment(self, player: str, round_number: int | None = None) -> str | None:
        return self.card_hashes.get(round_number or self.round, {}).get(player)

    def revealed(self, player: str, round_number: int | None = None) -> tuple[int, ...] | None:
        return self.cards_played.get(round_number or self.round, {}).get(player)

    def previous_survivors(self, player: str) -> tuple[SlotSnapshot, ...] | None:
        """Slot snapshots left by the previous round, or None in round 1."""
        return self.remaining_cards.get(self.round - 1, {}).get(player)


class WagerPlayerStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: PlayerBetStatus = PlayerBetStatus.PENDING


class BetTransactionRef(BaseModel):
    """Local mirror of a BetTransaction kept on the wager, in placement order."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    player: str
    status: BetTransactionStatus
    amount: float
    bet_type: BetType
    round: int


class Wager(BaseModel):
    """The betting ladder attached 1:1 to a match."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    player1: str
    player2: str
    currency: Currency
    player1_wager: float = 0.0
    player2_wager: float = 0.0
    total_pool: float = 0.0
    max_wager: float | None = None

    player_stats: dict[str, WagerPlayerStats] = Field(default_factory=dict)
    bet_transactions: tuple[BetTransactionRef, ...] = ()

    status: WagerStatus = WagerStatus.PENDING
    round: int = 1
    last_bet_time: datetime = Field(default_factory=_now)
    bet_time_limit: float = 300
    winner: str | None = None
    created_at: datetime = Field(default_factory=_now)

    @property
    def players(self) -> tuple[str, str]:
        return (self.player1, self.player2)

    @property
    def is_closed(self) -> bool:
        return self.status in (WagerStatus.FOLDED, WagerStatus.FORFEITED, WagerStatus.SETTLED)

    def has_player(self, player: str) -> bool:
        return player in self.players

    def opponent(self, player: str) -> str:
        if player == self.player1:
            return self.player2
        if player == self.player2:
            return self.player1
        raise ValueError(f"{player} is not in wager for match {self.match_id}")

    def player_status(self, player: str) -> PlayerBetStatus:
        stats = self.player_stats.get(player)
        return stats.status if stats is not None else PlayerBetStatus.PENDING

    def stake(self, player: str) -> float:
        return self.player1_wager if player == self.player1 else self.player2_wager

    def pending_transactions(self) -> tuple[BetTransactionRef, ...]:
        return tuple(ref for ref in self.bet_transactions if ref.status == BetTransactionStatus.PENDING)

    def find_transaction(self, transaction_id: str) -> BetTransactionRef | None:
        for ref in self.bet_transactions:
            if ref.transaction_id == transaction_id:
                return ref
        return None


class BetTransaction(BaseModel):
    """One betting action. Only ``status`` and the responder fields change, once."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    match_id: str
    player: str
    round: int
    amount: float
    signature: str
    bet_type: BetType
    status: BetTransactionStatus = BetTransactionStatus.PENDING
    responder: str | None = None
    responder_signature: str | None = None
    created_at: datetime = Field(default_factory=_now)
