"""Centralized match settings - all configurable battle and betting rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from arena.logic.enums import TiePolicy


class MatchSettings(BaseModel):
    """
    Configuration for the round engine and the betting ladder.

    All fields default to the live game's rules.
    """

    model_config = ConfigDict(frozen=True)

    # --- Match Structure ---
    max_rounds: int = Field(default=7, ge=1)
    slots_per_player: int = Field(default=3, ge=1)
    tie_policy: TiePolicy = TiePolicy.DRAW

    # --- Player Resources ---
    starting_energy: int = Field(default=8, ge=0)
    energy_per_round: int = Field(default=1, ge=0)  # budget grows by this much each round
    starting_base_health: int = Field(default=15, ge=1)

    # --- Betting ---
    bet_time_limit_seconds: float = Field(default=300, gt=0)

    def energy_budget(self, round_number: int) -> int:
        """Energy available in the given round. Unspent energy does not carry over."""
        if round_number < 1:
            raise ValueError(f"round must be >= 1, got {round_number}")
        return self.starting_energy + (round_number - 1) * self.energy_per_round
