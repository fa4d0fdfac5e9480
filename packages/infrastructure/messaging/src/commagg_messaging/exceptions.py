"""Messaging-specific exceptions for commagg-messaging."""

from __future__ import annotations

from commagg_core.primitives.exceptions import InfrastructureError, PoisonPayloadError


class MessagingError(InfrastructureError):
    """Base class for all messaging-related infrastructure errors."""


class MessagingConnectionError(MessagingError):
    """Raised when connectivity to the message broker fails."""


class MessagingSerializationError(MessagingError):
    """Raised when message serialization or deserialization fails."""


class MalformedPayloadError(MessagingSerializationError, PoisonPayloadError):
    """Raised when an inbound body cannot be decoded into the expected model.

    Consumers drop these instead of requeueing.
    """
