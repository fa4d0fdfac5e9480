"""BackoffScheduler: non-blocking delayed actions for delivery retries."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from commagg_messaging.retry import RetryPolicy

logger = logging.getLogger("commagg.delivery.scheduler")


class BackoffScheduler:
    """Runs an action after an exponential backoff delay without blocking.

    The delay for attempt ``n`` comes from the ``RetryPolicy``
    (``base * 2^(n-1)``, capped). ``drain`` waits for all pending actions;
    ``cancel_pending`` abandons them. The latest *history_size* scheduled
    delays are kept in ``history``.
    """

    def __init__(self, policy: RetryPolicy, *, history_size: int = 1000) -> None:
        self._policy = policy
        self._pending: set[asyncio.Task[None]] = set()
        self.history: deque[float] = deque(maxlen=history_size)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def pending(self) -> int:
        return len(self._pending)

    def delay_for(self, attempt: int) -> float:
        return self._policy.delay_for_attempt(attempt)

    def schedule(
        self,
        delay: float,
        action: Callable[[], Awaitable[object]],
        *,
        name: str | None = None,
    ) -> asyncio.Task[None]:
        """Run *action* after *delay* seconds. Returns immediately."""
        self.history.append(delay)
        task = asyncio.create_task(self._fire(delay, action), name=name)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait until every scheduled action (including chained ones) ran."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def cancel_pending(self) -> int:
        """Cancel every pending action; returns how many were cancelled."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)

    async def _fire(
        self, delay: float, action: Callable[[], Awaitable[object]]
    ) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await action()
        except Exception:
            logger.exception("Scheduled action failed")
