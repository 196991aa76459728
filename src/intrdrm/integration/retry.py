"""
Shared retry-with-backoff policy.

Every call to an external generation capability goes through
:func:`retry_with_backoff`. Transient failures are retried with an
exponentially growing delay (``initial_delay * 2 ** attempt``); failures that
will not go away on their own (missing executable, bad credentials, invalid
configuration) are re-raised immediately so a misconfigured deployment fails
fast instead of burning its retry budget.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from intrdrm.integration.adapters.base import AdapterError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Applied only to exceptions outside the adapter taxonomy.
NON_RETRYABLE_MARKERS = ("not found", "authentication", "auth")


def is_retryable(error: BaseException) -> bool:
    """Return False for failures that retrying cannot fix."""
    if isinstance(error, AdapterError):
        return error.retryable
    message = str(error).lower()
    return not any(marker in message for marker in NON_RETRYABLE_MARKERS)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: Optional[str] = None,
) -> T:
    """
    Run ``operation`` until it succeeds or the attempt budget is spent.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total attempts, including the first
        initial_delay: Delay in seconds before the second attempt
        sleep: Awaitable used for waiting (injected by tests)
        description: Label for log messages

    Returns:
        The first successful result

    Raises:
        The non-retryable error as soon as it occurs, otherwise the error of
        the final attempt
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    label = description or getattr(operation, "__name__", "operation")

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                logger.error("%s failed with a non-retryable error: %s", label, e)
                raise
            if attempt == max_attempts - 1:
                logger.error("%s failed after %d attempts: %s", label, max_attempts, e)
                raise
            delay = initial_delay * (2 ** attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %.1fs",
                label, attempt + 1, max_attempts, e, delay,
            )
            await sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


__all__ = ["NON_RETRYABLE_MARKERS", "is_retryable", "retry_with_backoff"]
