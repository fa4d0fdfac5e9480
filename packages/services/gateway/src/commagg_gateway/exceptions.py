"""Gateway exceptions."""

from __future__ import annotations

from commagg_core.primitives.exceptions import InfrastructureError


class EnqueueError(InfrastructureError):
    """Raised when a persisted record could not be published to the broker.

    The record has been marked ``enqueue_failed`` before this is raised.
    """

    def __init__(self, message_id: str, reason: str) -> None:
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Failed to enqueue message {message_id}: {reason}")
