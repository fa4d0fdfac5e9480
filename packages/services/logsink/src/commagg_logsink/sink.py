"""LogSink: consumes log events into the primary or fallback store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from commagg_core.config import LOG_QUEUE, LOG_ROUTE
from commagg_core.ports.background_worker import IBackgroundWorker
from commagg_core.primitives.exceptions import PoisonPayloadError
from commagg_messaging.serialization import EnvelopeSerializer

from .reconnector import PrimaryReconnector

if TYPE_CHECKING:
    from commagg_core.config import SinkConfig
    from commagg_core.ports.log_store import ILogStore
    from commagg_core.ports.messaging import IDelivery, IMessageConsumer

logger = logging.getLogger("commagg.logsink")

PRIMARY = "primary"
SECONDARY = "secondary"
DROPPED = "dropped"


class LogSink(IBackgroundWorker):
    """
    Best-effort log persistence with a primary store and a fallback.

    - While the primary is available each event goes there first and falls
      back to the secondary for that single event on failure.
    - ``failure_threshold`` consecutive primary failures (or an unhealthy
      primary at startup) mark it unavailable; events then go straight to the
      secondary and a ``PrimaryReconnector`` restores routing once healthy.
    - Events that fail on both stores, and undecodable payloads, are acked
      and dropped. The sink never requeues.
    """

    def __init__(
        self,
        primary: ILogStore,
        secondary: ILogStore,
        consumer: IMessageConsumer,
        config: SinkConfig,
        *,
        serializer: EnvelopeSerializer | None = None,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._consumer = consumer
        self._config = config
        self._serializer = serializer or EnvelopeSerializer()
        self._reconnector = PrimaryReconnector(
            primary,
            self._restore_primary,
            interval=config.retry_interval,
            timeout=config.health_timeout,
        )
        self._consecutive_failures = 0
        self.primary_available = False
        self.dropped = 0

    @property
    def reconnector(self) -> PrimaryReconnector:
        return self._reconnector

    async def start(self) -> None:
        self.primary_available = await self.wait_for_primary()
        if self.primary_available:
            logger.info("Primary log store is healthy")
        else:
            logger.warning(
                "Primary log store unavailable after %.0fs; using secondary",
                self._config.startup_timeout,
            )
            await self._reconnector.start()
        await self._consumer.subscribe(
            LOG_ROUTE,
            self.handle,
            queue_name=LOG_QUEUE,
            prefetch_count=self._config.prefetch_count,
        )

    async def stop(self) -> None:
        await self._reconnector.stop()

    async def wait_for_primary(self) -> bool:
        """Poll the primary until healthy or ``startup_timeout`` elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.startup_timeout
        while True:
            if await self._probe_primary():
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self._config.startup_poll_interval, remaining))

    async def _probe_primary(self) -> bool:
        try:
            healthy = await asyncio.wait_for(
                self._primary.health_check(self._config.health_timeout),
                timeout=self._config.health_timeout,
            )
        except Exception:  # noqa: BLE001
            logger.debug("Primary health probe failed", exc_info=True)
            return False
        return healthy is True

    async def handle(self, delivery: IDelivery) -> None:
        try:
            document = self._serializer.decode(delivery.body)
        except PoisonPayloadError as exc:
            logger.warning("Dropping undecodable log event: %s", exc)
            self.dropped += 1
            await delivery.ack()
            return
        document["received_at"] = datetime.now(timezone.utc).isoformat()
        await self.store(document)
        await delivery.ack()

    async def store(self, document: dict[str, Any]) -> str:
        """Write *document*; returns where it ended up."""
        if self.primary_available:
            try:
                await self._primary.write(document)
            except Exception as exc:  # noqa: BLE001
                logger.error("Primary log write failed: %s", exc)
                await self._record_primary_failure()
            else:
                self._consecutive_failures = 0
                return PRIMARY

        try:
            await self._secondary.write(document)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Both log stores failed; dropping event %r", document.get("message")
            )
            self.dropped += 1
            return DROPPED
        return SECONDARY

    async def _record_primary_failure(self) -> None:
        self._consecutive_failures += 1
        threshold = self._config.failure_threshold
        if threshold > 0 and self._consecutive_failures >= threshold:
            logger.warning(
                "Primary log store failed %d times in a row; switching to secondary",
                self._consecutive_failures,
            )
            self.primary_available = False
            await self._reconnector.start()

    def _restore_primary(self) -> None:
        self.primary_available = True
        self._consecutive_failures = 0
        logger.info("Routing log events to the primary store again")
