"""RabbitMQConsumer: IMessageConsumer with prefetch and manual ack/nack."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from commagg_core.config import ROUTING_EXCHANGE
from commagg_core.ports.messaging import IDelivery, IMessageConsumer

from .topology import declare_routing_exchange

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Mapping

    from aio_pika.abc import AbstractIncomingMessage, AbstractQueue

    from .connection import RabbitMQConnectionManager

logger = logging.getLogger(__name__)


class RabbitMQDelivery(IDelivery):
    """IDelivery over an aio_pika incoming message."""

    def __init__(self, raw: AbstractIncomingMessage) -> None:
        self._raw = raw
        self.settled = False

    @property
    def body(self) -> bytes:
        return self._raw.body

    @property
    def headers(self) -> Mapping[str, Any]:
        return self._raw.headers or {}

    @property
    def redelivered(self) -> bool:
        return bool(self._raw.redelivered)

    async def ack(self) -> None:
        self.settled = True
        await self._raw.ack()

    async def nack(self, requeue: bool = True) -> None:
        self.settled = True
        await self._raw.nack(requeue=requeue)


class RabbitMQConsumer(IMessageConsumer):
    """RabbitMQ adapter implementing IMessageConsumer.

    Each subscription gets its own channel with QoS prefetch, binds its queue
    to the routing exchange and consumes without auto-ack. The handler
    settles each delivery; an unhandled handler error is logged and the
    delivery is requeued (bounded by the queue's delivery limit).
    """

    def __init__(
        self,
        connection: RabbitMQConnectionManager,
        *,
        exchange_name: str = ROUTING_EXCHANGE,
        prefetch_count: int = 10,
        queue_arguments: dict[str, Any] | None = None,
    ) -> None:
        """Configure consumer.

        Args:
            connection: Shared connection manager.
            exchange_name: Exchange to bind to.
            prefetch_count: Default QoS prefetch (overridable per subscribe).
            queue_arguments: Arguments used when declaring subscribed queues.
        """
        self._connection = connection
        self._exchange_name = exchange_name
        self._prefetch_count = prefetch_count
        self._queue_arguments = queue_arguments
        self._queues: list[tuple[AbstractQueue, str]] = []

    async def subscribe(
        self,
        route: str,
        handler: Callable[[IDelivery], Coroutine[Any, Any, None]],
        queue_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Bind handler to route. Queue is declared and bound to the exchange."""
        prefetch = int(kwargs.get("prefetch_count", self._prefetch_count))
        channel = await self._connection.open_channel(prefetch)
        exchange = await declare_routing_exchange(channel, self._exchange_name)
        name = queue_name or route
        queue = await channel.declare_queue(
            name,
            durable=True,
            arguments=kwargs.get("queue_arguments", self._queue_arguments),
        )
        await queue.bind(exchange, routing_key=route)

        async def on_message(raw: AbstractIncomingMessage) -> None:
            delivery = RabbitMQDelivery(raw)
            try:
                await handler(delivery)
            except Exception:
                logger.exception("Unhandled error consuming from %s", name)
                if not delivery.settled:
                    await delivery.nack(requeue=True)
                return
            if not delivery.settled:
                await delivery.ack()

        tag = await queue.consume(on_message, no_ack=False)
        self._queues.append((queue, tag))
        logger.info("Consuming %s (route=%s, prefetch=%d)", name, route, prefetch)

    async def stop(self) -> None:
        """Cancel all consumers started by this adapter."""
        for queue, tag in self._queues:
            await queue.cancel(tag)
        self._queues.clear()

    async def health_check(self) -> bool:
        """Return True if the connection is healthy."""
        return await self._connection.health_check()
