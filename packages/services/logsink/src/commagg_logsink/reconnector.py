"""PrimaryReconnector: polls an unhealthy primary log store until it recovers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from commagg_core.ports.background_worker import IBackgroundWorker

if TYPE_CHECKING:
    from collections.abc import Callable

    from commagg_core.ports.log_store import ILogStore

logger = logging.getLogger("commagg.logsink.reconnector")


class PrimaryReconnector(IBackgroundWorker):
    """Health-checks the primary every ``interval`` seconds.

    On the first healthy probe it calls ``on_healthy`` and exits. A probe that
    raises or times out counts as unhealthy.

    Implements ``IBackgroundWorker`` (``start`` / ``stop``).
    """

    def __init__(
        self,
        primary: ILogStore,
        on_healthy: Callable[[], None],
        *,
        interval: float = 30.0,
        timeout: float = 5.0,
    ) -> None:
        self._primary = primary
        self._on_healthy = on_healthy
        self._interval = interval
        self._timeout = timeout
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("PrimaryReconnector started (interval=%.1fs)", self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._task, timeout=5.0)
        self._task = None
        logger.info("PrimaryReconnector stopped")

    async def run_once(self) -> bool:
        """Probe the primary once; notify and return True when healthy."""
        try:
            healthy = await asyncio.wait_for(
                self._primary.health_check(self._timeout), timeout=self._timeout
            )
        except Exception:  # noqa: BLE001
            logger.debug("Primary health probe failed", exc_info=True)
            healthy = False
        if healthy is True:
            self._on_healthy()
            return True
        return False

    async def _run_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                break
            if await self.run_once():
                self._running = False
                logger.info("Primary log store is healthy again")
                break
