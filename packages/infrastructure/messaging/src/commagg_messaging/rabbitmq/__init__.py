"""RabbitMQ transport adapter (aio-pika)."""

from __future__ import annotations

from .connection import RabbitMQConnectionManager
from .consumer import RabbitMQConsumer, RabbitMQDelivery
from .publisher import RabbitMQPublisher
from .topology import channel_queue_arguments, declare_topology

__all__ = [
    "RabbitMQConnectionManager",
    "RabbitMQConsumer",
    "RabbitMQDelivery",
    "RabbitMQPublisher",
    "channel_queue_arguments",
    "declare_topology",
]
