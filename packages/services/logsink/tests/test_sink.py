"""Tests for LogSink routing between the primary and secondary stores."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from commagg_core.adapters.memory import InMemoryLogStore
from commagg_core.config import SinkConfig
from commagg_logsink.sink import DROPPED, PRIMARY, SECONDARY, LogSink
from commagg_messaging.memory import (
    InMemoryConsumer,
    InMemoryMessageBus,
    InMemoryPublisher,
)
from commagg_observability.emitter import LogEmitter


@pytest.fixture
async def sink(
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    consumer: InMemoryConsumer,
    config: SinkConfig,
):
    sink = LogSink(primary, secondary, consumer, config)
    yield sink
    await sink.stop()


async def _wait_until(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_healthy_primary_receives_events(
    sink: LogSink,
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    publisher: InMemoryPublisher,
    bus: InMemoryMessageBus,
) -> None:
    await sink.start()
    assert sink.primary_available is True
    assert sink.reconnector.running is False

    await LogEmitter(publisher, "gateway").info("request_received", trace_id="t-1")

    assert primary.messages() == ["request_received"]
    assert secondary.documents == []
    assert "received_at" in primary.documents[0]
    assert primary.documents[0]["trace_id"] == "t-1"
    assert bus.outcomes("log") == ["ack"]


@pytest.mark.asyncio
async def test_write_failure_falls_back_for_that_event(
    sink: LogSink, primary: InMemoryLogStore, secondary: InMemoryLogStore
) -> None:
    sink.primary_available = True
    primary.fail_writes = True
    assert await sink.store({"message": "a"}) == SECONDARY

    primary.fail_writes = False
    assert await sink.store({"message": "b"}) == PRIMARY

    assert secondary.messages() == ["a"]
    assert primary.messages() == ["b"]
    assert sink.primary_available is True


@pytest.mark.asyncio
async def test_consecutive_failures_demote_primary(
    sink: LogSink, primary: InMemoryLogStore, secondary: InMemoryLogStore
) -> None:
    sink.primary_available = True
    primary.fail_writes = True
    primary.healthy = False

    for i in range(4):
        await sink.store({"message": f"e{i}"})

    assert primary.write_attempts == 3
    assert sink.primary_available is False
    assert sink.reconnector.running is True
    assert secondary.messages() == ["e0", "e1", "e2", "e3"]


@pytest.mark.asyncio
async def test_unhealthy_primary_at_startup_routes_to_secondary(
    sink: LogSink,
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    publisher: InMemoryPublisher,
) -> None:
    primary.healthy = False
    await sink.start()

    assert sink.primary_available is False
    assert sink.reconnector.running is True

    await publisher.publish("log", {"message": "while down"})
    assert primary.write_attempts == 0
    assert secondary.messages() == ["while down"]


@pytest.mark.asyncio
async def test_primary_recovery_restores_routing(
    sink: LogSink,
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    publisher: InMemoryPublisher,
) -> None:
    primary.healthy = False
    await sink.start()
    await publisher.publish("log", {"message": "down"})

    primary.healthy = True
    await _wait_until(lambda: sink.primary_available)
    await publisher.publish("log", {"message": "up"})

    assert secondary.messages() == ["down"]
    assert primary.messages() == ["up"]
    await _wait_until(lambda: not sink.reconnector.running)


@pytest.mark.asyncio
async def test_startup_waits_for_primary(
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    consumer: InMemoryConsumer,
) -> None:
    config = SinkConfig(startup_timeout=1.0, startup_poll_interval=0.01)
    primary.healthy = False
    sink = LogSink(primary, secondary, consumer, config)

    async def recover() -> None:
        await asyncio.sleep(0.03)
        primary.healthy = True

    recovery = asyncio.create_task(recover())
    assert await sink.wait_for_primary() is True
    await recovery
    assert primary.health_checks >= 2


@pytest.mark.asyncio
async def test_startup_wait_is_bounded(
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    consumer: InMemoryConsumer,
) -> None:
    config = SinkConfig(startup_timeout=0.05, startup_poll_interval=0.01)
    primary.healthy = False
    sink = LogSink(primary, secondary, consumer, config)

    loop = asyncio.get_running_loop()
    started = loop.time()
    assert await sink.wait_for_primary() is False
    assert loop.time() - started < 0.5


@pytest.mark.asyncio
async def test_health_requires_explicit_true(
    secondary: InMemoryLogStore, consumer: InMemoryConsumer, config: SinkConfig
) -> None:
    primary = AsyncMock()
    primary.health_check.return_value = {"status": "red"}
    sink = LogSink(primary, secondary, consumer, config)
    assert await sink.wait_for_primary() is False

    primary.health_check.side_effect = OSError("unreachable")
    assert await sink.wait_for_primary() is False
    await sink.stop()


@pytest.mark.asyncio
async def test_both_stores_failing_drops_and_acks(
    sink: LogSink,
    primary: InMemoryLogStore,
    secondary: InMemoryLogStore,
    publisher: InMemoryPublisher,
    bus: InMemoryMessageBus,
) -> None:
    await sink.start()
    primary.fail_writes = True
    secondary.fail_writes = True

    await publisher.publish("log", {"message": "lost"})

    assert sink.dropped == 1
    assert bus.outcomes("log") == ["ack"]
    assert bus.dead_letters == []
    assert await sink.store({"message": "lost again"}) == DROPPED


@pytest.mark.asyncio
async def test_undecodable_event_is_dropped(
    sink: LogSink,
    primary: InMemoryLogStore,
    publisher: InMemoryPublisher,
    bus: InMemoryMessageBus,
) -> None:
    await sink.start()
    await publisher.publish("log", b"\x00not json")
    await publisher.publish("log", b'["list"]')

    assert primary.documents == []
    assert sink.dropped == 2
    assert bus.outcomes("log") == ["ack", "ack"]
