"""Domain and infrastructure exceptions for commagg-core."""

from __future__ import annotations


class CommaggError(Exception):
    """Root exception for the entire commagg pipeline."""


class ValidationError(CommaggError):
    """Raised when a delivery request fails validation.

    Carries structured errors: ``{field: [messages]}``. Never retried.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class ConflictError(CommaggError):
    """Raised when a create collides with a unique key (message id or content hash).

    Usage: the loser of a race re-reads the winning record instead of failing.
    """

    def __init__(self, key: str, value: object | None = None) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Unique constraint violated on {key}={value!r}")


class NotFoundError(CommaggError):
    """Raised when a resource is not found."""


class RecordNotFoundError(NotFoundError):
    """Raised when no message record exists for a message id."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"MessageRecord with id={message_id!r} not found")


class TransientDeliveryError(CommaggError):
    """Raised when a send attempt fails in a way that may succeed on retry."""

    def __init__(self, channel: str, recipient: str, reason: str) -> None:
        self.channel = channel
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to deliver via {channel} to {recipient}: {reason}")


class PoisonPayloadError(CommaggError):
    """Raised when a payload can never be processed. Dropped, never retried."""


class InfrastructureError(CommaggError):
    """Base class for store and broker failures."""


class PersistenceError(InfrastructureError):
    """Base class for all persistence-related errors."""
