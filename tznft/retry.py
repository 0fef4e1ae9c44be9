"""Bounded retry with exponential backoff for async callables.

The defaults follow the usual retry-library policy: a factor of 2, a one
second first wait, no upper cap on the wait and a random jitter multiplier
between 1 and 2. ``retries`` counts retries, so the callable runs at most
``retries + 1`` times.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(RuntimeError):
    """Raised when every attempt failed; ``__cause__`` is the last failure."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempts")
        self.attempts = attempts


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 10
    factor: float = 2.0
    min_timeout: float = 1.0
    max_timeout: float = math.inf
    randomize: bool = True

    def delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Return the wait before retry number ``attempt`` (1-based)."""

        jitter = (1 + (rng or random).random()) if self.randomize else 1.0
        delay = jitter * self.min_timeout * (self.factor ** (attempt - 1))
        return min(delay, self.max_timeout)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` until it succeeds or the policy's retry budget is spent."""

    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except retry_on as exc:
            if attempt > policy.retries:
                logger.error("Attempt %d failed; retry budget exhausted: %s", attempt, exc)
                raise RetryExhaustedError(attempt) from exc
            delay = policy.delay(attempt)
            logger.info("Attempt %d failed (%s); retrying in %.1fs", attempt, exc, delay)
            await sleep(delay)
