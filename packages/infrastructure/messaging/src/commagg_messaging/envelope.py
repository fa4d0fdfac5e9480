"""RoutedEnvelope: immutable unit carried between gateway, broker and worker."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from commagg_core.domain.messages import MessageRecord


def _new_id() -> str:
    return str(uuid.uuid4())


class RoutedEnvelope(BaseModel):
    """Immutable wrapper for one delivery attempt over the wire.

    ``attempt`` counts delivery attempts already made for the message:
    0 on first publish, incremented on every requeue.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str
    channel: str
    to: str
    sender: str | None = Field(default=None, alias="from")
    subject: str | None = None
    body: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    attempt: int = Field(default=0, ge=0, description="Prior delivery attempts")
    trace_id: str
    span_id: str = Field(default_factory=_new_id)
    parent_span_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_record(
        cls,
        record: MessageRecord,
        *,
        span_id: str | None = None,
        parent_span_id: str | None = None,
    ) -> RoutedEnvelope:
        """First envelope (``attempt=0``) for a freshly queued record."""
        return cls(
            message_id=record.message_id,
            channel=record.channel,
            to=record.to,
            sender=record.sender,
            subject=record.subject,
            body=record.body,
            metadata=dict(record.metadata),
            attempt=0,
            trace_id=record.trace_id,
            span_id=span_id or _new_id(),
            parent_span_id=parent_span_id,
        )

    def next_attempt(self, attempt: int, span_id: str | None = None) -> RoutedEnvelope:
        """Retry envelope: new span whose parent is this envelope's span."""
        return self.model_copy(
            update={
                "attempt": attempt,
                "span_id": span_id or _new_id(),
                "parent_span_id": self.span_id,
                "created_at": datetime.now(timezone.utc),
            }
        )
