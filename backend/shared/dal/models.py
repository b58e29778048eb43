"""Persistence models for the economy ledger."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Currency(StrEnum):
    MANA = "mana"  # regenerating, staked in ranked matches
    RET = "ret"  # accumulating reward token, staked in wagered matches


class PlayerAccount(BaseModel, frozen=True):
    """Ledger subject: balances, experience and rank tier of one player."""

    username: str
    rank_tier: str = "rookie1"
    xp: int = 0
    wins: int = 0
    mana_balance: float = 100
    ret_balance: float = 0
    created_at: datetime = Field(default_factory=_utcnow)

    def balance(self, currency: Currency) -> float:
        return self.mana_balance if currency == Currency.MANA else self.ret_balance


class LedgerEntry(BaseModel, frozen=True):
    """One signed balance change in a player's per-currency history."""

    username: str
    currency: Currency
    change: float  # negative for debits
    reason: str
    match_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
