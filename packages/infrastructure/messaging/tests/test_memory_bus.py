"""Tests for the in-memory bus, publisher and consumer."""

from __future__ import annotations

import pytest

from commagg_core.ports.messaging import IDelivery
from commagg_messaging.exceptions import MessagingConnectionError, MessagingError
from commagg_messaging.memory import (
    InMemoryConsumer,
    InMemoryDelivery,
    InMemoryMessageBus,
    InMemoryPublisher,
)


@pytest.fixture
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus(delivery_limit=3)


@pytest.mark.asyncio
async def test_publish_without_subscriber_is_recorded(bus: InMemoryMessageBus) -> None:
    publisher = InMemoryPublisher(bus)
    await publisher.publish("email", {"a": 1})
    publisher.assert_published("email")
    assert publisher.get_published("email")[0].body == b'{"a":1}'
    assert bus.settlements == []


@pytest.mark.asyncio
async def test_handler_ack(bus: InMemoryMessageBus) -> None:
    received: list[bytes] = []

    async def handler(delivery: IDelivery) -> None:
        received.append(delivery.body)
        await delivery.ack()

    await InMemoryConsumer(bus).subscribe("email", handler)
    await InMemoryPublisher(bus).publish("email", b"raw")
    assert received == [b"raw"]
    assert bus.outcomes("email") == ["ack"]


@pytest.mark.asyncio
async def test_unsettled_delivery_is_acked(bus: InMemoryMessageBus) -> None:
    async def handler(delivery: IDelivery) -> None:
        return None

    bus.register("log", handler)
    await bus.publish("log", b"{}")
    assert bus.outcomes() == ["ack"]


@pytest.mark.asyncio
async def test_requeue_is_bounded_by_delivery_limit(bus: InMemoryMessageBus) -> None:
    seen: list[bool] = []

    async def handler(delivery: IDelivery) -> None:
        seen.append(delivery.redelivered)
        await delivery.nack(requeue=True)

    bus.register("sms", handler)
    await bus.publish("sms", b"x")
    assert seen == [False, True, True]
    assert bus.outcomes("sms") == ["requeue", "requeue", "requeue"]
    assert len(bus.dead_letters) == 1


@pytest.mark.asyncio
async def test_handler_exception_requeues(bus: InMemoryMessageBus) -> None:
    calls = 0

    async def handler(delivery: IDelivery) -> None:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        await delivery.ack()

    bus.register("sms", handler)
    await bus.publish("sms", b"x")
    assert bus.outcomes("sms") == ["requeue", "ack"]
    assert bus.dead_letters == []


@pytest.mark.asyncio
async def test_competing_handlers_round_robin(bus: InMemoryMessageBus) -> None:
    hits: list[str] = []

    def make(name: str):
        async def handler(delivery: IDelivery) -> None:
            hits.append(name)
            await delivery.ack()

        return handler

    bus.register("email", make("a"))
    bus.register("email", make("b"))
    for _ in range(4):
        await bus.publish("email", b"x")
    assert hits == ["a", "b", "a", "b"]


@pytest.mark.asyncio
async def test_fail_publish(bus: InMemoryMessageBus) -> None:
    bus.fail_publish = MessagingConnectionError("broker down")
    assert await InMemoryPublisher(bus).health_check() is False
    with pytest.raises(MessagingConnectionError):
        await bus.publish("email", b"x")
    assert bus.get_published() == []


@pytest.mark.asyncio
async def test_delivery_settles_once() -> None:
    delivery = InMemoryDelivery(b"x")
    await delivery.ack()
    with pytest.raises(MessagingError, match="already settled"):
        await delivery.nack()


def test_assert_published_reports_mismatch() -> None:
    publisher = InMemoryPublisher()
    with pytest.raises(AssertionError, match="Expected 1"):
        publisher.assert_published("email")


@pytest.mark.asyncio
async def test_consumer_records_subscriptions(bus: InMemoryMessageBus) -> None:
    consumer = InMemoryConsumer(bus)

    async def handler(delivery: IDelivery) -> None:
        await delivery.ack()

    await consumer.subscribe("sms", handler, queue_name="sms-queue", prefetch_count=5)

    sub = consumer.subscriptions[0]
    assert (sub.route, sub.queue_name) == ("sms", "sms-queue")
    assert sub.options == {"prefetch_count": 5}
    assert await consumer.health_check() is True
