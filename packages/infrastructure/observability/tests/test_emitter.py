"""Tests for LogEmitter."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from commagg_core.tracing import trace_scope
from commagg_messaging.exceptions import MessagingConnectionError
from commagg_messaging.memory import InMemoryPublisher
from commagg_observability.emitter import LogEmitter
from commagg_observability.events import LogLevel


@pytest.mark.asyncio
async def test_emit_publishes_on_log_route() -> None:
    publisher = InMemoryPublisher()
    emitter = LogEmitter(publisher, "gateway")

    ok = await emitter.info(
        "message_queued", trace_id="t-1", span_id="s-1", message_id="m-1"
    )

    assert ok is True
    publisher.assert_published("log")
    data = json.loads(publisher.get_published("log")[0].body)
    assert data["service"] == "gateway"
    assert data["level"] == "INFO"
    assert data["message"] == "message_queued"
    assert data["trace_id"] == "t-1"
    assert data["span_id"] == "s-1"
    assert data["payload"] == {"message_id": "m-1"}


@pytest.mark.asyncio
async def test_emit_defaults_ids_from_trace_scope() -> None:
    publisher = InMemoryPublisher()
    emitter = LogEmitter(publisher, "delivery.email")
    with trace_scope("t-ctx", "s-ctx"):
        await emitter.warn("attempt_failed", parent_span_id="p-1")
    data = json.loads(publisher.get_published("log")[0].body)
    assert data["level"] == LogLevel.WARN.value
    assert data["trace_id"] == "t-ctx"
    assert data["span_id"] == "s-ctx"
    assert data["parent_span_id"] == "p-1"


@pytest.mark.asyncio
async def test_emit_never_raises_on_publish_failure() -> None:
    publisher = AsyncMock()
    publisher.publish.side_effect = MessagingConnectionError("broker down")
    emitter = LogEmitter(publisher, "gateway")

    assert await emitter.error("enqueue_failed") is False
    assert emitter.dropped == 1


@pytest.mark.asyncio
async def test_emit_times_out() -> None:
    async def slow_publish(*args: object, **kwargs: object) -> None:
        await asyncio.sleep(1)

    publisher = AsyncMock()
    publisher.publish.side_effect = slow_publish
    emitter = LogEmitter(publisher, "gateway", timeout=0.01)

    assert await emitter.info("request_received") is False
    assert emitter.dropped == 1


@pytest.mark.asyncio
async def test_emit_mirrors_to_stdlib_logger(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LogEmitter(InMemoryPublisher(), "logsink")
    with caplog.at_level("INFO", logger="commagg.logsink"):
        await emitter.info("hello", n=1)
    assert any("hello" in r.getMessage() for r in caplog.records)
