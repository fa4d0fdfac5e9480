"""Delivery request and message record models."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..primitives.exceptions import ValidationError


class Channel(str, Enum):
    """Supported delivery channels. The value doubles as the routing key."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


DEFAULT_CHANNELS: tuple[str, ...] = tuple(c.value for c in Channel)


class MessageStatus(str, Enum):
    """Lifecycle of a message record."""

    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
    ENQUEUE_FAILED = "enqueue_failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[MessageStatus] = frozenset(
    {MessageStatus.SENT, MessageStatus.FAILED, MessageStatus.ENQUEUE_FAILED}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_str(
    payload: Mapping[str, Any], key: str, errors: dict[str, list[str]]
) -> str | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        errors.setdefault(key, []).append(f"{key} must be a string")
        return None
    return value


class DeliveryRequest(BaseModel):
    """Inbound request to deliver one message on one channel.

    Not persisted as such; folded into a content hash and a ``MessageRecord``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    channel: str
    to: str
    sender: str | None = Field(default=None, alias="from")
    subject: str | None = None
    body: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse(
        cls,
        payload: Mapping[str, Any],
        allowed_channels: tuple[str, ...] | frozenset[str] = DEFAULT_CHANNELS,
    ) -> DeliveryRequest:
        """Build a request from an untrusted mapping.

        Raises:
            ValidationError: with one entry per offending field.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("request body must be a JSON object")

        errors: dict[str, list[str]] = {}
        required: dict[str, str] = {}
        for key in ("channel", "to", "body"):
            value = payload.get(key)
            if value is None or value == "":
                errors.setdefault(key, []).append(f"{key} is required")
            elif not isinstance(value, str):
                errors.setdefault(key, []).append(f"{key} must be a string")
            else:
                required[key] = value

        channel = required.get("channel")
        if channel is not None and channel not in allowed_channels:
            errors.setdefault("channel", []).append(
                f"Invalid channel {channel!r}; expected one of "
                f"{', '.join(sorted(allowed_channels))}"
            )

        sender = _optional_str(payload, "from", errors)
        subject = _optional_str(payload, "subject", errors)

        metadata = payload.get("metadata")
        if metadata is None:
            metadata = {}
        elif not isinstance(metadata, Mapping):
            errors.setdefault("metadata", []).append("metadata must be an object")
            metadata = {}

        if errors:
            raise ValidationError(errors)

        return cls(
            channel=required["channel"],
            to=required["to"],
            sender=sender,
            subject=subject,
            body=required["body"],
            metadata=dict(metadata),
        )


class MessageRecord(BaseModel):
    """Persisted state of one submitted message.

    Content fields are immutable after creation. ``status`` moves from
    ``queued`` to exactly one terminal value; ``attempts`` and ``last_error``
    are written together with the terminal status.
    While a retry is waiting, ``retry_attempt`` and ``retry_due_at`` record it
    so another process can requeue it if this one dies.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str
    content_hash: str
    channel: str
    to: str
    sender: str | None = Field(default=None, alias="from")
    subject: str | None = None
    body: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    status: MessageStatus = MessageStatus.QUEUED
    attempts: int = Field(default=0, ge=0)
    last_error: str | None = None
    retry_attempt: int | None = Field(default=None, ge=1)
    retry_due_at: datetime | None = None
    trace_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_request(
        cls,
        request: DeliveryRequest,
        *,
        message_id: str,
        content_hash: str,
        trace_id: str,
    ) -> MessageRecord:
        return cls(
            message_id=message_id,
            content_hash=content_hash,
            channel=request.channel,
            to=request.to,
            sender=request.sender,
            subject=request.subject,
            body=request.body,
            metadata=dict(request.metadata),
            trace_id=trace_id,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
