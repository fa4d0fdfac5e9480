"""Domain models shared by the gateway, workers and stores."""

from __future__ import annotations

from .messages import (
    DEFAULT_CHANNELS,
    TERMINAL_STATUSES,
    Channel,
    DeliveryRequest,
    MessageRecord,
    MessageStatus,
)

__all__ = [
    "DEFAULT_CHANNELS",
    "TERMINAL_STATUSES",
    "Channel",
    "DeliveryRequest",
    "MessageRecord",
    "MessageStatus",
]
