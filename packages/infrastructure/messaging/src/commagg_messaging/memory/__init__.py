"""In-memory messaging adapters for testing."""

from __future__ import annotations

from .bus import InMemoryDelivery, InMemoryMessageBus, PublishedMessage, Settlement
from .consumer import InMemoryConsumer, Subscription
from .publisher import InMemoryPublisher

__all__ = [
    "InMemoryConsumer",
    "InMemoryDelivery",
    "InMemoryMessageBus",
    "InMemoryPublisher",
    "PublishedMessage",
    "Settlement",
    "Subscription",
]
