"""Abstract interface for the rank-tier reward table."""

from abc import ABC, abstractmethod


class RewardRepository(ABC):
    """Singleton mapping from normalized rank tier to a payout value."""

    @abstractmethod
    async def get_rewards(self) -> dict[str, float]: ...

    @abstractmethod
    async def replace_rewards(self, rewards: dict[str, float]) -> None:
        """Replace the whole table in one transaction."""
        ...
