"""Card catalog: static card stats and the reserved empty-slot sentinel."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from arena.logic.exceptions import CardNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable

SENTINEL_CARD_ID = 999


class Card(BaseModel):
    """Static stats for one card type."""

    model_config = ConfigDict(frozen=True)

    card_id: int
    name: str
    hp: int = Field(ge=0)
    atk: int = Field(ge=0)
    spd: int = Field(ge=0)
    egy: int = Field(ge=0)
    rarity: str = "common"

    @property
    def is_sentinel(self) -> bool:
        return self.card_id == SENTINEL_CARD_ID


SENTINEL_CARD = Card(card_id=SENTINEL_CARD_ID, name="Empty Slot", hp=0, atk=0, spd=0, egy=0, rarity="none")


class CardCatalog(ABC):
    """Read access to card stats by id.

    The sentinel id always resolves to the zero-stat placeholder and can
    never be overwritten by stored data.
    """

    @abstractmethod
    async def get_card(self, card_id: int) -> Card | None: ...

    @abstractmethod
    async def list_cards(self) -> list[Card]: ...

    @abstractmethod
    async def upsert_cards(self, cards: Iterable[Card]) -> None: ...

    async def resolve(self, card_ids: Iterable[int]) -> dict[int, Card]:
        """Return stats for every id, raising CardNotFoundError for the first unknown one."""
        resolved: dict[int, Card] = {}
        for card_id in card_ids:
            if card_id in resolved:
                continue
            if card_id == SENTINEL_CARD_ID:
                resolved[card_id] = SENTINEL_CARD
                continue
            card = await self.get_card(card_id)
            if card is None:
                raise CardNotFoundError(f"Card {card_id} not found")
            resolved[card_id] = card
        return resolved


class InMemoryCardCatalog(CardCatalog):
    """Dict-backed catalog for tests and fixed card sets."""

    def __init__(self, cards: Iterable[Card] = ()) -> None:
        self._cards: dict[int, Card] = {}
        for card in cards:
            self._store(card)

    def _store(self, card: Card) -> None:
        if card.card_id == SENTINEL_CARD_ID:
            raise ValueError(f"Card id {SENTINEL_CARD_ID} is reserved for the empty slot")
        self._cards[card.card_id] = card

    async def get_card(self, card_id: int) -> Card | None:
        if card_id == SENTINEL_CARD_ID:
            return SENTINEL_CARD
        return self._cards.get(card_id)

    async def list_cards(self) -> list[Card]:
        return sorted(self._cards.values(), key=lambda card: card.card_id)

    async def upsert_cards(self, cards: Iterable[Card]) -> None:
        for card in cards:
            self._store(card)
