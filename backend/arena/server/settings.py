"""Arena configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings

from arena.logic.enums import TiePolicy
from arena.logic.settings import MatchSettings


class ArenaSettings(BaseSettings):
    model_config = {"env_prefix": "ARENA_"}

    database_path: str = Field(default="backend/data/arena.db", min_length=1)
    log_dir: str = Field(default="backend/logs/arena", min_length=1)
    signature_secret: str = Field(min_length=1)

    bet_time_limit_seconds: float = Field(default=300, gt=0)
    max_rounds: int = Field(default=7, ge=1)
    tie_policy: TiePolicy = TiePolicy.DRAW

    ledger_retry_attempts: int = Field(default=3, ge=1)
    ledger_retry_delay_seconds: float = Field(default=0.05, ge=0)

    def to_match_settings(self) -> MatchSettings:
        return MatchSettings(
            max_rounds=self.max_rounds,
            tie_policy=self.tie_policy,
            bet_time_limit_seconds=self.bet_time_limit_seconds,
        )
