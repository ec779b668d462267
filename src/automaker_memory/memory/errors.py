"""Best-effort operations.

Usage tracking and event logging are side channels: they must never fail the
selection or the learning append that triggered them. Such calls go through
``run_non_critical`` (or ``emit_non_critical``) so they read differently from
critical paths, which let errors propagate.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class NonCriticalResult:
    """Outcome of a best-effort operation."""

    success: bool
    value: Any = None
    error: str | None = None


async def run_non_critical(
    operation: Callable[[], Awaitable[Any]],
    *,
    description: str,
) -> NonCriticalResult:
    """Await ``operation()``, logging and swallowing any Exception.

    Cancellation (BaseException) still propagates.

    Args:
        operation: Zero-argument coroutine function.
        description: What is being attempted, for the log line.

    Returns:
        NonCriticalResult with the value on success, or the error text.
    """
    try:
        value = await operation()
    except Exception as e:
        logger.warning("Non-critical operation failed (%s): %s", description, e)
        return NonCriticalResult(success=False, error=str(e) or type(e).__name__)
    return NonCriticalResult(success=True, value=value)


def emit_non_critical(
    operation: Callable[[], Any],
    *,
    description: str,
) -> NonCriticalResult:
    """Synchronous counterpart of ``run_non_critical``, for event log writes."""
    try:
        value = operation()
    except Exception as e:
        logger.warning("Non-critical operation failed (%s): %s", description, e)
        return NonCriticalResult(success=False, error=str(e) or type(e).__name__)
    return NonCriticalResult(success=True, value=value)
