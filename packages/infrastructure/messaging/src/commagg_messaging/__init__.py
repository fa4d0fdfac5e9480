"""Broker adapters for commagg: RabbitMQ (aio-pika) and in-memory."""

from __future__ import annotations

from .envelope import RoutedEnvelope
from .exceptions import (
    MalformedPayloadError,
    MessagingConnectionError,
    MessagingError,
    MessagingSerializationError,
)
from .memory import (
    InMemoryConsumer,
    InMemoryDelivery,
    InMemoryMessageBus,
    InMemoryPublisher,
)
from .retry import RetryPolicy, retry_async
from .serialization import EnvelopeSerializer

__all__ = [
    "EnvelopeSerializer",
    "InMemoryConsumer",
    "InMemoryDelivery",
    "InMemoryMessageBus",
    "InMemoryPublisher",
    "MalformedPayloadError",
    "MessagingConnectionError",
    "MessagingError",
    "MessagingSerializationError",
    "RetryPolicy",
    "RoutedEnvelope",
    "retry_async",
]
