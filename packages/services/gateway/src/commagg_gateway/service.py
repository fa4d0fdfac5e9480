"""DedupGateway: content-addressed ingestion of delivery requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from commagg_core.domain.messages import (
    DeliveryRequest,
    MessageRecord,
    MessageStatus,
)
from commagg_core.primitives.exceptions import (
    ConflictError,
    InfrastructureError,
    RecordNotFoundError,
)
from commagg_core.primitives.id_generator import IIDGenerator, UUID4Generator
from commagg_core.tracing import trace_scope
from commagg_messaging.envelope import RoutedEnvelope
from commagg_messaging.retry import RetryPolicy, retry_async

from .exceptions import EnqueueError
from .fingerprint import content_hash

if TYPE_CHECKING:
    from collections.abc import Mapping

    from commagg_core.config import GatewayConfig
    from commagg_core.ports.messaging import IMessagePublisher
    from commagg_core.ports.record_store import IRecordStore
    from commagg_observability.emitter import LogEmitter

logger = logging.getLogger("commagg.gateway")

DUPLICATE_PREVENTED = "duplicate_message_prevented"
DUPLICATE_RACE = "duplicate"


@dataclass(frozen=True)
class SubmissionResult:
    message_id: str
    status: MessageStatus
    trace_id: str
    duplicate: bool = False
    info: str | None = None

    @classmethod
    def duplicate_of(cls, record: MessageRecord, info: str) -> SubmissionResult:
        return cls(
            message_id=record.message_id,
            status=record.status,
            trace_id=record.trace_id,
            duplicate=True,
            info=info,
        )


class DedupGateway:
    """
    Accepts delivery requests and hands each distinct one to the broker once.

    Per submission:
    1. Validate and fingerprint the request.
    2. Return the existing record for a known fingerprint (no publish).
    3. Persist a ``queued`` record; a create conflict means a concurrent
       identical submission won, so its record is returned instead. A conflict
       with this submission's own record (an earlier attempt committed before
       its reply was lost) continues to the publish.
    4. Publish ``RoutedEnvelope(attempt=0)`` on the channel's route. If that
       fails after retries the record becomes ``enqueue_failed`` and
       ``EnqueueError`` is raised.
    """

    def __init__(
        self,
        store: IRecordStore,
        publisher: IMessagePublisher,
        emitter: LogEmitter,
        config: GatewayConfig,
        *,
        id_generator: IIDGenerator | None = None,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._emitter = emitter
        self._config = config
        self._ids = id_generator or UUID4Generator()
        self._persist_policy = RetryPolicy(
            max_attempts=config.persist_attempts,
            base_delay=config.persist_delay,
            max_delay=max(config.persist_delay, 5.0),
        )
        self._publish_policy = RetryPolicy(
            max_attempts=config.publish_attempts,
            base_delay=config.publish_delay,
            max_delay=max(config.publish_delay, 30.0),
        )

    async def submit(self, payload: Mapping[str, Any]) -> SubmissionResult:
        """Validate, deduplicate, persist and publish one request.

        Raises:
            ValidationError: missing/invalid fields or unknown channel.
            InfrastructureError: the record could not be persisted.
            EnqueueError: the record was persisted but never published.
        """
        trace_id = self._ids.next_id()
        entry_span = self._ids.next_id()
        with trace_scope(trace_id, entry_span):
            await self._emitter.info(
                "request_received", trace_id=trace_id, span_id=entry_span
            )
            request = DeliveryRequest.parse(payload, self._config.allowed_channels)
            digest = content_hash(request)

            existing = await self._store.find_by_hash(digest)
            if existing is not None:
                logger.info(
                    "Duplicate submission for %s (hash=%s)",
                    existing.message_id,
                    digest[:12],
                )
                return SubmissionResult.duplicate_of(existing, DUPLICATE_PREVENTED)

            record = MessageRecord.from_request(
                request,
                message_id=self._ids.next_id(),
                content_hash=digest,
                trace_id=trace_id,
            )
            try:
                await retry_async(
                    lambda: self._store.create(record),
                    self._persist_policy,
                    retry_on=(InfrastructureError,),
                    give_up_on=(ConflictError,),
                    description="record create",
                )
            except ConflictError:
                winner = await self._store.find_by_hash(digest)
                if winner is None:
                    raise
                if winner.message_id != record.message_id:
                    logger.info("Lost create race to %s", winner.message_id)
                    return SubmissionResult.duplicate_of(winner, DUPLICATE_RACE)
                # an earlier attempt committed before its reply was lost
                logger.info("Record %s was already written", record.message_id)

            publish_span = self._ids.next_id()
            await self._publish(record, publish_span, entry_span)
            await self._emitter.info(
                "message_queued",
                trace_id=trace_id,
                span_id=publish_span,
                parent_span_id=entry_span,
                message_id=record.message_id,
                channel=record.channel,
            )
            return SubmissionResult(
                message_id=record.message_id,
                status=MessageStatus.QUEUED,
                trace_id=trace_id,
            )

    async def _publish(
        self, record: MessageRecord, span_id: str, parent_span_id: str
    ) -> None:
        envelope = RoutedEnvelope.for_record(
            record, span_id=span_id, parent_span_id=parent_span_id
        )
        try:
            await retry_async(
                lambda: self._publisher.publish(
                    record.channel, envelope, persistent=True
                ),
                self._publish_policy,
                description="envelope publish",
            )
        except Exception as exc:
            logger.error(
                "Publish failed for %s after %d attempts: %s",
                record.message_id,
                self._publish_policy.max_attempts,
                exc,
            )
            try:
                await self._store.update_status(
                    record.message_id,
                    MessageStatus.ENQUEUE_FAILED,
                    last_error=str(exc),
                )
            except InfrastructureError:
                logger.exception(
                    "Could not mark %s enqueue_failed", record.message_id
                )
            await self._emitter.error(
                "enqueue_failed",
                trace_id=record.trace_id,
                span_id=span_id,
                parent_span_id=parent_span_id,
                message_id=record.message_id,
                error=str(exc),
            )
            raise EnqueueError(record.message_id, str(exc)) from exc

    async def lookup(self, message_id: str) -> MessageRecord:
        """Return the record for *message_id*.

        Raises:
            RecordNotFoundError: no such message.
        """
        record = await self._store.find_by_id(message_id)
        if record is None:
            raise RecordNotFoundError(message_id)
        return record
