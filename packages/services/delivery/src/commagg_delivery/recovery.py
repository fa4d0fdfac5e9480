"""RetrySweeper: requeues persisted retries whose in-process timer was lost."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from commagg_core.ports.background_worker import IBackgroundWorker
from commagg_messaging.envelope import RoutedEnvelope

if TYPE_CHECKING:
    from collections.abc import Callable

    from commagg_core.ports.record_store import IRecordStore

    from .worker import ChannelWorker

logger = logging.getLogger("commagg.delivery.recovery")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetrySweeper(IBackgroundWorker):
    """Polls the record store for overdue retries on one channel.

    A retry is overdue once ``retry_due_at + grace`` has passed, which only
    happens when the process that scheduled it died or was stopped without
    draining. Each overdue retry is requeued through the worker, which claims
    it first, so a timer that fires late never publishes a second copy.

    Runs once right after ``start`` and then every ``interval`` seconds;
    :meth:`trigger` wakes it early.

    Implements ``IBackgroundWorker`` (``start`` / ``stop``).
    """

    def __init__(
        self,
        worker: ChannelWorker,
        store: IRecordStore,
        *,
        interval: float = 30.0,
        grace: float = 60.0,
        batch_size: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._worker = worker
        self._store = store
        self._interval = interval
        self._grace = timedelta(seconds=grace)
        self._batch_size = batch_size
        self._clock = clock
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._trigger = asyncio.Event()

    def trigger(self) -> None:
        self._trigger.set()

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._trigger.set()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "RetrySweeper started (channel=%s, interval=%.1fs)",
            self._worker.channel,
            self._interval,
        )

    async def stop(self) -> None:
        self._running = False
        self._trigger.set()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._task, timeout=5.0)
        self._task = None
        logger.info("RetrySweeper stopped")

    async def run_once(self) -> int:
        """Requeue every overdue retry; returns how many were published."""
        cutoff = self._clock() - self._grace
        due = await self._store.find_due_retries(
            self._worker.channel, cutoff, self._batch_size
        )
        published = 0
        for record in due:
            if record.retry_attempt is None:
                continue
            retry = RoutedEnvelope.for_record(record).next_attempt(
                record.retry_attempt
            )
            if await self._worker.requeue(retry):
                published += 1
        if published:
            logger.info(
                "Recovered %d overdue retries on %s", published, self._worker.channel
            )
        return published

    async def _run_loop(self) -> None:
        while self._running:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._trigger.wait(), timeout=self._interval)
            self._trigger.clear()
            if not self._running:
                break
            try:
                await self.run_once()
            except Exception:
                logger.exception("RetrySweeper error")
