"""RetryPolicy: exponential backoff, max attempts, optional jitter."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Configurable retry with exponential backoff and optional jitter."""

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 300.0,
        jitter: bool = False,
    ) -> None:
        """Configure retry behavior.

        Args:
            max_attempts: Maximum number of attempts (including first).
            base_delay: Delay in seconds after the first failed attempt.
            max_delay: Cap on delay in seconds.
            jitter: If True, multiply delays by a random factor in [0.5, 1.5].
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")
        if base_delay > max_delay:
            raise ValueError("base_delay must be <= max_delay")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def should_retry(self, attempt: int) -> bool:
        """Return True if another attempt is allowed (attempt is 1-based)."""
        return 1 <= attempt < self.max_attempts

    def delay_for_attempt(self, attempt: int) -> float:
        """Return delay in seconds after the given 1-based attempt failed.

        Uses exponential backoff: base_delay * 2^(attempt-1), capped by max_delay.
        """
        if attempt < 1:
            return 0.0
        delay = min(
            self.base_delay * (2 ** (attempt - 1)),
            self.max_delay,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())  # noqa: S311
        return float(max(0.0, delay))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    give_up_on: tuple[type[BaseException], ...] = (),
    description: str = "operation",
) -> T:
    """Run *operation* until it succeeds or *policy* is exhausted.

    Exceptions in *give_up_on* propagate immediately; the last exception is
    re-raised once attempts run out.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except give_up_on:
            raise
        except retry_on as exc:
            if not policy.should_retry(attempt):
                raise
            delay = policy.delay_for_attempt(attempt)
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.2fs",
                description,
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            if delay > 0:
                await _sleep(delay)


async def _sleep(seconds: float) -> None:
    """Async sleep (overridable for tests)."""
    await asyncio.sleep(seconds)
