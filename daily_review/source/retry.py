"""Capped exponential backoff for source requests."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from daily_review.errors import TransientNetworkError

T = TypeVar("T")


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``fn`` retrying only on TransientNetworkError.

    Any other error propagates on the first failure. After the last
    attempt the transient error itself is re-raised.
    """
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except TransientNetworkError as e:
            if attempt >= max_attempts:
                logger.warning(f"Giving up after {max_attempts} attempts: {e}")
                raise
            logger.warning(f"Attempt {attempt}/{max_attempts} failed: {e}. Retrying in {delay:.1f}s...")
            await sleep(delay)
            delay = min(delay * backoff_factor, max_delay)
    raise RuntimeError("max_attempts must be at least 1")
