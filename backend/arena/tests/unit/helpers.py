"""Builders shared by the arena unit tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from arena.logic.cards import SENTINEL_CARD, SENTINEL_CARD_ID, Card
from arena.logic.commit_reveal import hash_selection
from arena.logic.enums import MatchType
from arena.logic.signatures import action_payload, sign_action
from arena.logic.state import Match, PlayerStats, Wager, WagerPlayerStats, currency_for

if TYPE_CHECKING:
    from collections.abc import Sequence

    from arena.logic.action_result import ActionResult
    from arena.session.service import ArenaService
    from arena.storage.match_store import MatchStore

TEST_SECRET = "test-signature-secret"  # noqa: S105
START = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
EMPTY = (SENTINEL_CARD_ID, SENTINEL_CARD_ID, SENTINEL_CARD_ID)

TEST_CARDS = (
    Card(card_id=1, name="Squire", hp=5, atk=2, spd=3, egy=2),
    Card(card_id=2, name="Archer", hp=3, atk=3, spd=5, egy=3),
    Card(card_id=3, name="Golem", hp=10, atk=1, spd=1, egy=3),
    Card(card_id=4, name="Dragon", hp=8, atk=6, spd=4, egy=9, rarity="legendary"),
    Card(card_id=5, name="Sprite", hp=1, atk=1, spd=2, egy=1),
)
CARDS_BY_ID = {card.card_id: card for card in TEST_CARDS} | {SENTINEL_CARD_ID: SENTINEL_CARD}


class FakeClock:
    """Manually advanced clock for timer tests."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def sign(player: str, match_id: str, action: str, **fields: Any) -> str:
    return sign_action(TEST_SECRET, player, action_payload(match_id, action, **fields))


def create_match(
    match_id: str = "m1",
    players: tuple[str, str] = ("alice", "bob"),
    *,
    match_type: MatchType = MatchType.WAGERED,
    base_health: int = 15,
    **updates: Any,
) -> Match:
    """Create a fresh round-1 match with sensible defaults."""
    match = Match(
        match_id=match_id,
        players=players,
        rank_tier="rookie1",
        match_type=match_type,
        waiting_for=players,
        player_stats={p: PlayerStats(energy=8, base_health=base_health) for p in players},
        created_at=START,
        updated_at=START,
    )
    return match.model_copy(update=updates) if updates else match


def create_wager(match: Match, *, stake: float = 0.0, **updates: Any) -> Wager:
    wager = Wager(
        match_id=match.match_id,
        player1=match.players[0],
        player2=match.players[1],
        currency=currency_for(match.match_type),
        player1_wager=stake,
        player2_wager=stake,
        total_pool=stake * 2,
        player_stats={p: WagerPlayerStats() for p in match.players},
        last_bet_time=START,
        created_at=START,
    )
    return wager.model_copy(update=updates) if updates else wager


async def force_state(
    store: MatchStore, match_id: str, *, wager: dict[str, Any] | None = None, **updates: Any
) -> Match:
    """Overwrite stored match (and optionally wager) fields, bypassing the service."""
    match = await store.get_match(match_id)
    current = await store.get_wager(match_id)
    assert match is not None
    assert current is not None
    if wager:
        current = current.model_copy(update=wager)
    return await store.save(match.model_copy(update=updates), current, expected=match)


async def reveal(
    service: ArenaService, match_id: str, player: str, cards: Sequence[int], round_number: int
) -> ActionResult:
    signature = sign(player, match_id, "reveal", round=round_number, cards=list(cards))
    return await service.reveal_cards(match_id, player, cards, signature)


async def play_round(
    service: ArenaService,
    match_id: str,
    selections: dict[str, Sequence[int]],
    round_number: int,
) -> ActionResult:
    """Commit then reveal for every player; returns the last reveal's result."""
    for player, cards in selections.items():
        committed = await service.commit_cards(match_id, player, hash_selection(cards))
        assert committed.success, committed.message
    result = None
    for player, cards in selections.items():
        result = await reveal(service, match_id, player, cards, round_number)
        assert result.success, result.message
    assert result is not None
    return result
