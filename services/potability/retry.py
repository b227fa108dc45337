"""Bounded sequential retry for async operations."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_delay(attempt: int) -> float:
    """Seconds to wait after the given 1-based failed attempt."""
    return float(attempt)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    delay: Callable[[int], float] = linear_delay

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    should_retry: Callable[[Exception], bool],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation(attempt_index)`` until it succeeds or attempts run out.

    ``attempt_index`` starts at 0. Exceptions rejected by ``should_retry``
    propagate immediately; the last retryable exception is re-raised once
    ``policy.max_attempts`` calls have failed.
    """
    attempt = 0
    while True:
        try:
            return await operation(attempt)
        except Exception as exc:
            attempt += 1
            if not should_retry(exc) or attempt >= policy.max_attempts:
                raise
            wait = policy.delay(attempt)
            logger.info(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt, policy.max_attempts, type(exc).__name__, wait,
            )
            await sleep(wait)
