"""ChannelWorker: consumes one channel queue and drives delivery attempts."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from commagg_core.config import channel_queue
from commagg_core.domain.messages import MessageStatus
from commagg_core.ports.background_worker import IBackgroundWorker
from commagg_core.primitives.exceptions import (
    InfrastructureError,
    PoisonPayloadError,
    TransientDeliveryError,
)
from commagg_core.tracing import trace_scope
from commagg_messaging.envelope import RoutedEnvelope
from commagg_messaging.retry import RetryPolicy, retry_async
from commagg_messaging.serialization import EnvelopeSerializer

from .scheduler import BackoffScheduler

if TYPE_CHECKING:
    from commagg_core.config import WorkerConfig
    from commagg_core.ports.messaging import (
        IDelivery,
        IMessageConsumer,
        IMessagePublisher,
    )
    from commagg_core.ports.record_store import IRecordStore
    from commagg_observability.emitter import LogEmitter

    from .sender import ISender

logger = logging.getLogger("commagg.delivery")


class ChannelWorker(IBackgroundWorker):
    """
    Delivers envelopes for a single channel with bounded, idempotent retries.

    For each envelope, with ``n = envelope.attempt + 1``:

    1. A terminal record means a redelivery: ack and discard.
    2. Attempt the send.
    3. Success: record ``sent`` with ``attempts=n``, ack.
    4. Failure and ``n < max_attempts``: persist the pending retry on the
       record, schedule a copy with ``attempt=n`` after ``delay(n)``, ack now.
       Whoever claims the pending retry first (this timer or a
       ``RetrySweeper`` after a restart) publishes it.
    5. Failure and ``n >= max_attempts``: record ``failed`` with the error, ack.
    6. Malformed envelopes and envelopes without a record are dropped.
    7. Any other error (store down, broker down) is nacked with requeue and
       bounded by the queue's delivery limit.

    Implements ``IBackgroundWorker`` (``start`` / ``stop``).
    """

    def __init__(
        self,
        config: WorkerConfig,
        store: IRecordStore,
        publisher: IMessagePublisher,
        consumer: IMessageConsumer,
        sender: ISender,
        emitter: LogEmitter,
        *,
        scheduler: BackoffScheduler | None = None,
        serializer: EnvelopeSerializer | None = None,
        queue_arguments: dict[str, Any] | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._publisher = publisher
        self._consumer = consumer
        self._sender = sender
        self._emitter = emitter
        self._scheduler = scheduler or BackoffScheduler(
            RetryPolicy(
                max_attempts=config.max_attempts,
                base_delay=config.base_delay,
                max_delay=config.max_delay,
            )
        )
        self._serializer = serializer or EnvelopeSerializer()
        self._queue_arguments = queue_arguments
        self._requeue_policy = RetryPolicy(
            max_attempts=config.requeue_publish_attempts,
            base_delay=min(config.base_delay, 1.0),
            max_delay=max(config.base_delay, 1.0),
        )
        self._running = False

    @property
    def channel(self) -> str:
        return self._config.channel

    @property
    def scheduler(self) -> BackoffScheduler:
        return self._scheduler

    async def start(self) -> None:
        if self._running:
            return
        kwargs: dict[str, Any] = {"prefetch_count": self._config.prefetch_count}
        if self._queue_arguments is not None:
            kwargs["queue_arguments"] = self._queue_arguments
        await self._consumer.subscribe(
            self._config.channel,
            self.handle,
            queue_name=channel_queue(self._config.channel),
            **kwargs,
        )
        self._running = True
        logger.info(
            "ChannelWorker started (channel=%s, max_attempts=%d, prefetch=%d)",
            self._config.channel,
            self._config.max_attempts,
            self._config.prefetch_count,
        )

    async def stop(self, *, drain: bool = True) -> None:
        """Stop accepting work.

        With *drain* the scheduled retries are awaited; otherwise they are
        abandoned and a ``RetrySweeper`` picks up the persisted ones.
        """
        self._running = False
        if drain:
            if self._scheduler.pending:
                logger.info(
                    "Waiting for %d scheduled retries on %s",
                    self._scheduler.pending,
                    self._config.channel,
                )
            await self._scheduler.drain()
        else:
            abandoned = await self._scheduler.cancel_pending()
            if abandoned:
                logger.info(
                    "Abandoned %d scheduled retries on %s",
                    abandoned,
                    self._config.channel,
                )
        logger.info("ChannelWorker stopped (channel=%s)", self._config.channel)

    async def handle(self, delivery: IDelivery) -> None:
        """Process one broker delivery. Always settles it."""
        try:
            envelope = self._serializer.deserialize(delivery.body, RoutedEnvelope)
        except PoisonPayloadError as exc:
            logger.error("Dropping malformed envelope on %s: %s", self.channel, exc)
            await self._emitter.error(
                "malformed_envelope", channel=self.channel, error=str(exc)
            )
            await delivery.ack()
            return

        with trace_scope(envelope.trace_id, envelope.span_id):
            try:
                await self._process(envelope, delivery)
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "Unexpected error processing %s; requeueing", envelope.message_id
                )
                await self._emitter.error(
                    "processing_error",
                    parent_span_id=envelope.parent_span_id,
                    message_id=envelope.message_id,
                    attempt=envelope.attempt,
                    error=str(exc),
                    redelivered=delivery.redelivered,
                )
                await delivery.nack(requeue=True)

    async def _process(self, envelope: RoutedEnvelope, delivery: IDelivery) -> None:
        record = await self._store.find_by_id(envelope.message_id)
        if record is None:
            logger.error("No record for %s; dropping envelope", envelope.message_id)
            await self._emitter.error(
                "orphan_envelope",
                parent_span_id=envelope.parent_span_id,
                message_id=envelope.message_id,
            )
            await delivery.ack()
            return
        if record.is_terminal:
            logger.info(
                "Skipping %s: already %s", record.message_id, record.status.value
            )
            await delivery.ack()
            return

        attempt = envelope.attempt + 1
        try:
            await self._sender.send(envelope)
        except TransientDeliveryError as exc:
            await self._on_failure(envelope, attempt, exc)
            await delivery.ack()
            return

        await self._store.update_status(
            envelope.message_id, MessageStatus.SENT, attempts=attempt
        )
        await self._emitter.info(
            "delivered",
            parent_span_id=envelope.parent_span_id,
            message_id=envelope.message_id,
            channel=envelope.channel,
            attempts=attempt,
        )
        await delivery.ack()

    async def _on_failure(
        self, envelope: RoutedEnvelope, attempt: int, exc: TransientDeliveryError
    ) -> None:
        if attempt < self._config.max_attempts:
            delay = self._scheduler.delay_for(attempt)
            retry = envelope.next_attempt(attempt)
            durable = await self._persist_retry(retry, delay)
            await self._emitter.warn(
                "attempt_failed",
                parent_span_id=envelope.parent_span_id,
                message_id=envelope.message_id,
                attempt=attempt,
                error=str(exc),
                retry_in=delay,
            )
            self._scheduler.schedule(
                delay,
                lambda: self.requeue(retry, claim=durable),
                name=f"retry-{envelope.message_id}-{attempt}",
            )
            return

        await self._store.update_status(
            envelope.message_id,
            MessageStatus.FAILED,
            attempts=attempt,
            last_error=str(exc),
        )
        await self._emitter.error(
            "delivery_failed",
            parent_span_id=envelope.parent_span_id,
            message_id=envelope.message_id,
            attempts=attempt,
            error=str(exc),
        )

    async def _persist_retry(self, retry: RoutedEnvelope, delay: float) -> bool:
        due_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
        try:
            return await self._store.schedule_retry(
                retry.message_id, retry.attempt, due_at
            )
        except InfrastructureError as exc:
            logger.warning(
                "Retry %d of %s kept in memory only: %s",
                retry.attempt,
                retry.message_id,
                exc,
            )
            return False

    async def requeue(self, retry: RoutedEnvelope, *, claim: bool = True) -> bool:
        """Publish *retry* to the channel route.

        With *claim*, the record's pending retry is claimed first and nothing
        is published unless this caller wins. Returns True when published.
        """
        with trace_scope(retry.trace_id, retry.span_id):
            if claim and not await self._claim(retry):
                return False
            try:
                await retry_async(
                    lambda: self._publisher.publish(
                        self._config.channel, retry, persistent=True
                    ),
                    self._requeue_policy,
                    description="retry publish",
                )
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Could not requeue %s (attempt %d): %s",
                    retry.message_id,
                    retry.attempt,
                    exc,
                )
                await self._store.update_status(
                    retry.message_id,
                    MessageStatus.FAILED,
                    attempts=retry.attempt,
                    last_error=f"requeue failed: {exc}",
                )
                await self._emitter.error(
                    "requeue_failed",
                    parent_span_id=retry.parent_span_id,
                    message_id=retry.message_id,
                    attempts=retry.attempt,
                    error=str(exc),
                )
                return False
        return True

    async def _claim(self, retry: RoutedEnvelope) -> bool:
        try:
            claimed = await self._store.claim_retry(retry.message_id, retry.attempt)
        except InfrastructureError as exc:
            logger.warning(
                "Cannot claim retry %d of %s (%s); leaving it to the sweeper",
                retry.attempt,
                retry.message_id,
                exc,
            )
            return False
        if not claimed:
            logger.info(
                "Retry %d of %s was already requeued or settled",
                retry.attempt,
                retry.message_id,
            )
        return claimed
