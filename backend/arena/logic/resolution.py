"""
Match resolution: the terminal money movements once a match is completed.

``build_rewards`` decides the settlement record from the closed snapshots
(no I/O); ``pay_out`` then applies it through the ledger. The record is
persisted with the completed match before any credit is made, so a match
is never paid twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from arena.logic.economy import xp_changes
from arena.logic.enums import MatchType
from arena.logic.state import MatchRewards
from shared.dal.models import Currency

if TYPE_CHECKING:
    from collections.abc import Iterable

    from arena.logic.ledger import EconomyLedger
    from arena.logic.state import Match, Wager

logger = structlog.get_logger()

REWARD_REASON = "match reward"
POT_REASON = "wager pot"
REFUND_REASON = "bet refund"
DRAW_REASON = "draw refund"


def build_rewards(match: Match, wager: Wager, *, reward: float, full: bool) -> MatchRewards:
    """
    Settlement record for a completed match.

    Args:
        match: The completed match
        wager: The closed wager
        reward: Tier payout in RET, looked up before the match was closed
        full: True when the match ended by combat, the round cap or surrender;
            fold and forfeit only move the pot

    """
    if match.winner is None:
        return MatchRewards(winner=None, currency=wager.currency)
    xp_gained = xp_lost = 0
    if full and match.match_type == MatchType.RANKED:
        xp_gained, xp_lost = xp_changes(match.total_mana_pool)
    return MatchRewards(
        winner=match.winner,
        currency=wager.currency,
        ret_amount=reward if full else 0.0,
        ret_credited=full,
        pot_amount=wager.total_pool,
        xp_gained=xp_gained,
        xp_lost=xp_lost,
    )


async def pay_out(
    ledger: EconomyLedger,
    match: Match,
    wager: Wager,
    rewards: MatchRewards,
    refunds: Iterable[tuple[str, float]] = (),
) -> None:
    """Credit refunds, the pot, the tier reward and XP for a completed match."""
    for player, amount in refunds:
        await ledger.credit_balance(player, amount, wager.currency, REFUND_REASON, match.match_id)

    winner = rewards.winner
    if winner is None:
        for player in wager.players:
            stake = wager.stake(player)
            if stake > 0:
                await ledger.credit_balance(player, stake, wager.currency, DRAW_REASON, match.match_id)
        logger.info("match drawn, stakes refunded", pool=wager.total_pool)
        return

    if rewards.pot_amount > 0:
        await ledger.credit_balance(winner, rewards.pot_amount, wager.currency, POT_REASON, match.match_id)

    if rewards.ret_credited:
        await ledger.credit_balance(winner, rewards.ret_amount, Currency.RET, REWARD_REASON, match.match_id)
        await ledger.adjust_xp(winner, rewards.xp_gained, add_win=True)
        if rewards.xp_lost:
            await ledger.adjust_xp(match.opponent(winner), -rewards.xp_lost)

    logger.info(
        "match settled",
        winner=winner,
        pot=rewards.pot_amount,
        reward=rewards.ret_amount,
        xp_gained=rewards.xp_gained,
        xp_lost=rewards.xp_lost,
    )
