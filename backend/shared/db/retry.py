"""Bounded retry for SQLite operations that hit a transient lock."""

import asyncio
import sqlite3
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY_SECONDS = 0.05

_TRANSIENT_MARKERS = ("database is locked", "database is busy")


def is_transient(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
) -> T:
    """Run an async database operation, retrying transient lock errors a fixed number of times.

    Non-transient errors and the final transient error propagate unchanged.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except sqlite3.OperationalError as exc:
            if not is_transient(exc) or attempt == attempts:
                raise
            logger.warning("transient database error, retrying", attempt=attempt, error=str(exc))
            await asyncio.sleep(delay_seconds * attempt)
    raise AssertionError("unreachable")  # pragma: no cover
