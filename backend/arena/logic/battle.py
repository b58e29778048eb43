"""
Battle simulation for a single round.

Pure and deterministic: the same card stats, selections, starting stats and
match id always produce the same attack history and health values. Nothing
here touches storage; the caller persists the returned outcome.

Order of play:
1. Every slot of both players is sorted by descending speed.
2. Equal speeds are broken by the per-round tie-break slot (see
   ``arena.logic.rng``); within one player the lower slot index acts first.
3. Each live attacker hits the opponent's card in the same slot. An empty or
   destroyed defender means the attack goes to the defending base. Card
   damage is clamped at zero with no overflow to the base.
4. The round stops as soon as either base is at or below zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from arena.logic.cards import SENTINEL_CARD_ID
from arena.logic.exceptions import EnergyExceededError
from arena.logic.rng import first_slot
from arena.logic.state import AttackRecord, PlayerStats, SlotSnapshot

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from arena.logic.cards import Card


@dataclass
class _Fighter:
    """Mutable per-round view of one occupied slot. Never leaves this module."""

    player: str
    side: int
    slot: int
    card_id: int
    hp: int
    atk: int
    spd: int

    @property
    def alive(self) -> bool:
        return self.card_id != SENTINEL_CARD_ID and self.hp > 0


class RoundOutcome(BaseModel):
    """Result of simulating one round."""

    model_config = ConfigDict(frozen=True)

    player_stats: dict[str, PlayerStats]
    history: tuple[AttackRecord, ...]
    remaining: dict[str, tuple[SlotSnapshot, ...]]
    winner: str | None = None
    loser: str | None = None


def energy_cost(selection: Sequence[int], cards: Mapping[int, Card]) -> int:
    """Total energy of the non-sentinel cards in a selection."""
    return sum(cards[card_id].egy for card_id in selection if card_id != SENTINEL_CARD_ID)


def starting_health(
    selection: Sequence[int],
    cards: Mapping[int, Card],
    survivors: Sequence[SlotSnapshot] | None,
) -> list[int]:
    """Health each slot enters the round with.

    A card that survived the previous round at the same slot keeps its
    residual health; everything else starts at full catalog health.
    """
    health = []
    for slot, card_id in enumerate(selection):
        if card_id == SENTINEL_CARD_ID:
            health.append(0)
            continue
        carried = survivors[slot] if survivors is not None and slot < len(survivors) else None
        if carried is not None and carried.card_id == card_id:
            health.append(carried.hp)
        else:
            health.append(cards[card_id].hp)
    return health


def attack_order(fighters: list[_Fighter], leading_side: int) -> list[_Fighter]:
    """Descending speed; ties go to ``leading_side`` first, then to the lower slot."""
    return sorted(fighters, key=lambda f: (-f.spd, 0 if f.side == leading_side else 1, f.slot))


def simulate_round(
    *,
    match_id: str,
    round_number: int,
    players: tuple[str, str],
    selections: Mapping[str, Sequence[int]],
    cards: Mapping[int, Card],
    player_stats: Mapping[str, PlayerStats],
    energy_budget: int,
    survivors: Mapping[str, Sequence[SlotSnapshot]] | None = None,
) -> RoundOutcome:
    """
    Simulate one round of combat.

    Args:
        match_id: Match identifier, feeds the speed tie-break
        round_number: Round being simulated
        players: Both usernames in slot order
        selections: Revealed card ids per player, one per slot
        cards: Catalog stats for every id in the selections (sentinel included)
        player_stats: Stats entering the round (base health carries over)
        energy_budget: Energy available to each player this round
        survivors: Previous round's slot snapshots, for residual health

    Returns:
        RoundOutcome with updated stats, the attack history and slot snapshots

    Raises:
        EnergyExceededError: If a selection costs more than the budget

    """
    survivors = survivors or {}
    energy: dict[str, int] = {}
    for player in players:
        cost = energy_cost(selections[player], cards)
        if cost > energy_budget:
            raise EnergyExceededError(player=player, cost=cost, budget=energy_budget)
        energy[player] = energy_budget - cost

    fighters: dict[str, list[_Fighter]] = {}
    for side, player in enumerate(players):
        selection = selections[player]
        health = starting_health(selection, cards, survivors.get(player))
        fighters[player] = [
            _Fighter(
                player=player,
                side=side,
                slot=slot,
                card_id=card_id,
                hp=health[slot],
                atk=cards[card_id].atk,
                spd=cards[card_id].spd,
            )
            for slot, card_id in enumerate(selection)
        ]

    base_health = {player: player_stats[player].base_health for player in players}
    history: list[AttackRecord] = []
    winner: str | None = None
    loser: str | None = None

    everyone = fighters[players[0]] + fighters[players[1]]
    for attacker in attack_order(everyone, first_slot(match_id, round_number)):
        if not attacker.alive:
            continue
        target_player = players[1 - attacker.side]
        defenders = fighters[target_player]
        defender = defenders[attacker.slot] if attacker.slot < len(defenders) else None

        if defender is None or not defender.alive:
            base_health[target_player] -= attacker.atk
            history.append(
                AttackRecord(
                    attacker=attacker.player,
                    target=target_player,
                    attacker_slot=attacker.slot,
                    attacker_card_id=attacker.card_id,
                    target_card_id=None,
                    damage=attacker.atk,
                    attacked_base=True,
                    target_remaining_health=base_health[target_player],
                ),
            )
        else:
            defender.hp = max(0, defender.hp - attacker.atk)
            history.append(
                AttackRecord(
                    attacker=attacker.player,
                    target=target_player,
                    attacker_slot=attacker.slot,
                    attacker_card_id=attacker.card_id,
                    target_card_id=defender.card_id,
                    damage=attacker.atk,
                    attacked_base=False,
                    target_remaining_health=defender.hp,
                ),
            )

        if base_health[target_player] <= 0:
            winner, loser = attacker.player, target_player
            break

    remaining = {
        player: tuple(
            SlotSnapshot(card_id=f.card_id, hp=f.hp) if f.alive else SlotSnapshot() for f in fighters[player]
        )
        for player in players
    }
    stats = {player: PlayerStats(energy=energy[player], base_health=base_health[player]) for player in players}
    return RoundOutcome(player_stats=stats, history=tuple(history), remaining=remaining, winner=winner, loser=loser)
