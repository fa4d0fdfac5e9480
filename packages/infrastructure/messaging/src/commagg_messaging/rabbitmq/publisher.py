"""RabbitMQPublisher: IMessagePublisher on the routing exchange with confirms."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aio_pika

from commagg_core.config import ROUTING_EXCHANGE
from commagg_core.ports.messaging import IMessagePublisher

from ..exceptions import MessagingConnectionError
from ..serialization import EnvelopeSerializer
from .topology import declare_routing_exchange

if TYPE_CHECKING:
    from aio_pika.abc import AbstractExchange

    from .connection import RabbitMQConnectionManager


class RabbitMQPublisher(IMessagePublisher):
    """RabbitMQ adapter implementing IMessagePublisher.

    Publishes to a direct exchange; route is the routing key. The channel is
    opened with publisher confirms, so ``publish`` returns once the broker
    has accepted the message.
    """

    def __init__(
        self,
        connection: RabbitMQConnectionManager,
        *,
        exchange_name: str = ROUTING_EXCHANGE,
        serializer: EnvelopeSerializer | None = None,
    ) -> None:
        """Configure publisher.

        Args:
            connection: Shared connection manager.
            exchange_name: Exchange to publish to.
            serializer: Used to serialize models; default EnvelopeSerializer().
        """
        self._connection = connection
        self._exchange_name = exchange_name
        self._serializer = serializer or EnvelopeSerializer()
        self._exchange: AbstractExchange | None = None

    async def _ensure_exchange(self) -> AbstractExchange:
        if self._exchange is not None:
            return self._exchange
        self._exchange = await declare_routing_exchange(
            self._connection.channel, self._exchange_name
        )
        return self._exchange

    async def publish(self, route: str, message: Any, **kwargs: Any) -> None:
        """Publish *message* (model or bytes) with *route* as routing key.

        Keyword args:
            persistent: Mark the message persistent (default True).
            headers: Extra AMQP headers.
        """
        body = (
            message
            if isinstance(message, bytes)
            else self._serializer.serialize(message)
        )
        headers: dict[str, Any] = dict(kwargs.get("headers") or {})
        trace_id = getattr(message, "trace_id", None)
        if trace_id:
            headers.setdefault("trace_id", trace_id)
        delivery_mode = (
            aio_pika.DeliveryMode.PERSISTENT
            if kwargs.get("persistent", True)
            else aio_pika.DeliveryMode.NOT_PERSISTENT
        )
        try:
            await self._connection.connect()
            exchange = await self._ensure_exchange()
            await exchange.publish(
                aio_pika.Message(
                    body=body,
                    content_type="application/json",
                    delivery_mode=delivery_mode,
                    headers=headers,
                ),
                routing_key=route,
            )
        except (ConnectionError, OSError, aio_pika.exceptions.AMQPError) as e:
            self._exchange = None
            raise MessagingConnectionError(str(e)) from e

    async def health_check(self) -> bool:
        """Return True if the connection is healthy."""
        return await self._connection.health_check()
