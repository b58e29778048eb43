"""
Typed result returned by every arena service operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from arena.logic.enums import ErrorCode
    from arena.logic.exceptions import ArenaError


class ActionResult(NamedTuple):
    """
    Outcome of one operation at the service boundary.

    ``success`` plus a human-readable ``message`` on every result; ``code``
    is set only on failures, ``data`` carries operation-specific fields
    (the new bet id, the round winner, and so on).
    """

    success: bool
    message: str
    code: ErrorCode | None = None
    data: dict[str, Any] | None = None


def ok(message: str, **data: Any) -> ActionResult:
    return ActionResult(success=True, message=message, data=data or None)


def failed(error: ArenaError, **data: Any) -> ActionResult:
    return ActionResult(success=False, message=error.message, code=error.code, data=data or None)
