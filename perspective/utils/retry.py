from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff(attempt: int, base: float = 1.5, jitter: float = 0.5) -> float:
    """Compute exponential backoff with jitter."""
    delay = base ** attempt
    return delay + random.uniform(0, jitter)


async def schedule_retry(attempt: int, base: float = 1.5, jitter: float = 0.5) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, base=base, jitter=jitter)
    await asyncio.sleep(delay)


def retrying(
    fn: Callable[[], Awaitable[T]],
    retries: int,
    base: float = 1.5,
    jitter: float = 0.5,
) -> Callable[[], Awaitable[T]]:
    """Wrap a zero-argument coroutine function so it is retried on failure.

    ``retries`` counts additional attempts after the first one. The last
    failure propagates unchanged.
    """

    if retries <= 0:
        return fn

    async def _call() -> T:
        attempt = 0
        while True:
            try:
                return await fn()
            except Exception as exc:
                attempt += 1
                if attempt > retries:
                    raise
                logger.warning(f"Attempt {attempt} failed ({exc}); retrying")
                await schedule_retry(attempt, base=base, jitter=jitter)

    return _call
