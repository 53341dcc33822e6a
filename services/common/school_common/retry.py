from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay in seconds before ``attempt`` (0-indexed, attempt >= 1)."""
    return base_delay * (2 ** (attempt - 1))


async def with_retry(
    op: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    *,
    sleep: Optional[Sleep] = None,
    description: str = "operation",
) -> T:
    """
    Run ``op``, retrying failures with exponential backoff.

    ``op`` is attempted at most ``max_retries + 1`` times; the wait before
    retry ``k`` is ``base_delay * 2 ** (k - 1)`` seconds. No jitter is added,
    callers that need it must wrap ``sleep``. Failures flagged
    ``retryable = False`` (validation, missing context, not found) are
    re-raised at once. Once the retries are used up the last failure is
    re-raised as is. Cancellation interrupts the sleep and stops the loop.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    sleep = sleep or asyncio.sleep
    attempt = 0
    while True:
        try:
            return await op()
        except Exception as exc:
            if getattr(exc, "retryable", True) is False or attempt >= max_retries:
                raise
            attempt += 1
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                description,
                attempt,
                max_retries + 1,
                exc,
                delay,
            )
        await sleep(delay)
