"""Exchange and queue layout shared by the gateway, workers and log sink.

One direct exchange carries every route: each channel name is a routing key
bound to ``<channel>-queue`` and the ``log`` key is bound to ``logging``.
Channel queues are quorum queues with a delivery limit, so a message that is
requeued after infrastructure errors is dead-lettered instead of looping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aio_pika

from commagg_core.config import (
    DEAD_LETTER_EXCHANGE,
    LOG_QUEUE,
    LOG_ROUTE,
    ROUTING_EXCHANGE,
    channel_queue,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aio_pika.abc import AbstractChannel, AbstractExchange

DEAD_LETTER_QUEUE = "dead-letter"


def channel_queue_arguments(redelivery_limit: int) -> dict[str, Any]:
    """Queue arguments bounding broker redelivery for a channel queue."""
    return {
        "x-queue-type": "quorum",
        "x-delivery-limit": redelivery_limit,
        "x-dead-letter-exchange": DEAD_LETTER_EXCHANGE,
    }


async def declare_routing_exchange(
    channel: AbstractChannel, name: str = ROUTING_EXCHANGE
) -> AbstractExchange:
    """Declare the durable direct exchange keyed by route."""
    return await channel.declare_exchange(
        name,
        aio_pika.ExchangeType.DIRECT,
        durable=True,
    )


async def declare_topology(
    channel: AbstractChannel,
    channels: Iterable[str],
    *,
    redelivery_limit: int = 10,
) -> AbstractExchange:
    """Declare the routing exchange, per-channel queues, log queue and DLX."""
    exchange = await declare_routing_exchange(channel)

    dlx = await channel.declare_exchange(
        DEAD_LETTER_EXCHANGE,
        aio_pika.ExchangeType.FANOUT,
        durable=True,
    )
    dead_letters = await channel.declare_queue(DEAD_LETTER_QUEUE, durable=True)
    await dead_letters.bind(dlx)

    for name in channels:
        queue = await channel.declare_queue(
            channel_queue(name),
            durable=True,
            arguments=channel_queue_arguments(redelivery_limit),
        )
        await queue.bind(exchange, routing_key=name)

    logs = await channel.declare_queue(LOG_QUEUE, durable=True)
    await logs.bind(exchange, routing_key=LOG_ROUTE)
    return exchange
