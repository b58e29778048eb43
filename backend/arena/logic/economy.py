"""
Economy rules: rank tiers, buy-ins, daily mana caps, reward tables and XP.

Pure functions only; balances are moved by ``arena.logic.ledger``.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime

_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"[0-9]")

DEFAULT_REWARD_TABLE: dict[str, float] = {
    "rookie1": 14.784372086975955,
    "rookie2": 29.56874417395191,
    "rookie3": 44.80112753629077,
    "adept1": 59.585499623266735,
    "adept2": 74.36987171024268,
    "adept3": 89.60225507258154,
    "expert1": 104.3866271595575,
    "expert2": 119.17099924653347,
    "expert3": 134.40338260887233,
    "master1": 149.18775469584827,
    "master2": 163.97212678282423,
    "master3": 179.20451014516308,
    "grandmaster1": 193.98888223213905,
    "grandmaster2": 208.773254319115,
    "grandmaster3": 224.0056376814539,
    "champion1": 238.7900097684298,
    "champion2": 253.57438185540576,
    "champion3": 268.80676521774467,
    "legend1": 283.59113730472063,
    "legend2": 298.37550939169654,
    "legend3": 313.6078927540354,
    "myth1": 328.39226484101135,
    "myth2": 343.17663692798726,
    "myth3": 358.40902029032617,
    "transcendent": 448.0112753629078,
}

RANK_WEIGHTS: dict[str, float] = {
    "rookie1": 0.33,
    "rookie2": 0.66,
    "rookie3": 1,
    "adept1": 1.33,
    "adept2": 1.66,
    "adept3": 2,
    "expert1": 2.33,
    "expert2": 2.66,
    "expert3": 3,
    "master1": 3.33,
    "master2": 3.66,
    "master3": 4,
    "grandmaster1": 4.33,
    "grandmaster2": 4.66,
    "grandmaster3": 5,
    "champion1": 5.33,
    "champion2": 5.66,
    "champion3": 6,
    "legend1": 6.33,
    "legend2": 6.66,
    "legend3": 7,
    "myth1": 7.33,
    "myth2": 7.66,
    "myth3": 8,
    "transcendent": 10,
}

BUY_IN_BY_FAMILY: dict[str, int] = {
    "rookie": 1,
    "adept": 100,
    "expert": 150,
    "master": 200,
    "grandmaster": 250,
    "transcendent": 250,
}

DAILY_MANA_BY_FAMILY: dict[str, int] = {
    "rookie": 1000,
    "adept": 2000,
    "expert": 3000,
    "master": 4000,
    "grandmaster": 5000,
    "transcendent": 5000,
}
DEFAULT_DAILY_MANA = 1000

INITIAL_DAILY_POOL = 1_000_000
DAILY_DECAY_RATE = 0.001
POOL_EPOCH = date(2023, 1, 1)
WINS_PER_ALLOCATION = 100  # daily allocation is spread over this many wins
MAX_REWARD_PER_WEIGHT = 100


def normalize_rank_tier(rank_tier: str) -> str:
    """Case-fold and strip all whitespace: ``"Rookie 1"`` -> ``"rookie1"``."""
    return _WHITESPACE.sub("", rank_tier).casefold()


def rank_family(rank_tier: str) -> str:
    """Tier without its level digits: ``"Grand Master 2"`` -> ``"grandmaster"``."""
    return _DIGITS.sub("", normalize_rank_tier(rank_tier))


def buy_in(rank_tier: str) -> int:
    return BUY_IN_BY_FAMILY.get(rank_family(rank_tier), 0)


def max_daily_mana(rank_tier: str) -> int:
    return DAILY_MANA_BY_FAMILY.get(rank_family(rank_tier), DEFAULT_DAILY_MANA)


def days_since_epoch(today: date | datetime | None = None) -> int:
    if today is None:
        today = datetime.now(UTC)
    if isinstance(today, datetime):
        today = today.date()
    return (today - POOL_EPOCH).days


def daily_pool(today: date | datetime | None = None) -> float:
    """The reward pool for a day: 1,000,000 decaying 0.1% per day since 2023-01-01."""
    return INITIAL_DAILY_POOL * math.pow(1 - DAILY_DECAY_RATE, days_since_epoch(today))


def reward_per_win(rank_tier: str, pool: float, weights: dict[str, float] = RANK_WEIGHTS) -> float:
    """A tier's share of the pool spread over 100 wins, capped at 100 x its weight."""
    weight = weights[normalize_rank_tier(rank_tier)]
    total_weight = sum(weights.values())
    allocated = weight / total_weight * pool
    return min(allocated / WINS_PER_ALLOCATION, MAX_REWARD_PER_WEIGHT * weight)


def compute_reward_table(
    today: date | datetime | None = None,
    weights: dict[str, float] = RANK_WEIGHTS,
) -> dict[str, float]:
    """Rebuild the whole reward table for a day."""
    pool = daily_pool(today)
    return {tier: reward_per_win(tier, pool, weights) for tier in weights}


def xp_changes(total_pool: float) -> tuple[int, int]:
    """XP gained by the winner and lost by the loser of a ranked match."""
    gained = math.floor(total_pool)
    lost = math.floor(total_pool / 2)
    return gained, lost
