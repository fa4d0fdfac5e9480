"""Tests for persisted retries and the RetrySweeper."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from commagg_core.config import WorkerConfig
from commagg_core.domain.messages import MessageStatus
from commagg_core.primitives.exceptions import (
    InfrastructureError,
    TransientDeliveryError,
)
from commagg_delivery.recovery import RetrySweeper
from commagg_delivery.worker import ChannelWorker
from commagg_observability.emitter import LogEmitter

if TYPE_CHECKING:
    from commagg_messaging.envelope import RoutedEnvelope


class FlakySender:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.attempts: list[int] = []

    async def send(self, envelope: RoutedEnvelope) -> None:
        self.attempts.append(envelope.attempt + 1)
        if len(self.attempts) <= self.failures:
            raise TransientDeliveryError(envelope.channel, envelope.to, "timeout")


def _worker(pipeline, sender, *, delay: float) -> ChannelWorker:
    config = WorkerConfig(
        channel="email",
        base_delay=delay,
        max_delay=delay,
        requeue_publish_attempts=2,
    )
    return ChannelWorker(
        config,
        pipeline.store,
        pipeline.publisher,
        pipeline.consumer,
        sender,
        LogEmitter(pipeline.publisher, "delivery.email"),
    )


def _far_future() -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=1)


@pytest.mark.asyncio
async def test_failed_attempt_persists_pending_retry(pipeline) -> None:
    worker = _worker(pipeline, FlakySender(failures=1), delay=10.0)
    await worker.start()
    before = datetime.now(timezone.utc)

    await pipeline.enqueue()

    record = await pipeline.store.find_by_id("m-1")
    assert record.status is MessageStatus.QUEUED
    assert record.retry_attempt == 1
    assert record.retry_due_at >= before + timedelta(seconds=9)
    await worker.stop(drain=False)


@pytest.mark.asyncio
async def test_stop_without_drain_abandons_timers(pipeline) -> None:
    worker = _worker(pipeline, FlakySender(failures=1), delay=10.0)
    await worker.start()

    await pipeline.enqueue()
    assert worker.scheduler.pending == 1
    await worker.stop(drain=False)

    assert worker.scheduler.pending == 0
    assert len(pipeline.envelopes()) == 1
    record = await pipeline.store.find_by_id("m-1")
    assert record.retry_attempt == 1


@pytest.mark.asyncio
async def test_sweeper_recovers_abandoned_retry(pipeline) -> None:
    sender = FlakySender(failures=1)
    worker = _worker(pipeline, sender, delay=10.0)
    await worker.start()
    await pipeline.enqueue()
    # the timer is lost, as when the process dies
    await worker.scheduler.cancel_pending()
    sweeper = RetrySweeper(worker, pipeline.store, grace=0, clock=_far_future)

    assert await sweeper.run_once() == 1
    assert await sweeper.run_once() == 0

    record = await pipeline.store.find_by_id("m-1")
    assert record.status is MessageStatus.SENT
    assert record.attempts == 2
    assert record.retry_attempt is None
    assert sender.attempts == [1, 2]
    assert [e.attempt for e in pipeline.envelopes()] == [0, 1]


@pytest.mark.asyncio
async def test_retry_is_not_due_within_grace(pipeline) -> None:
    worker = _worker(pipeline, FlakySender(failures=1), delay=10.0)
    await worker.start()
    await pipeline.enqueue()

    sweeper = RetrySweeper(worker, pipeline.store, grace=60.0)

    assert await sweeper.run_once() == 0
    await worker.stop(drain=False)


@pytest.mark.asyncio
async def test_timer_and_sweeper_publish_once(pipeline) -> None:
    sender = FlakySender(failures=1)
    worker = _worker(pipeline, sender, delay=0.01)
    await worker.start()
    await pipeline.enqueue()

    sweeper = RetrySweeper(worker, pipeline.store, grace=0, clock=_far_future)
    assert await sweeper.run_once() == 1
    await worker.scheduler.drain()

    assert sender.attempts == [1, 2]
    assert [e.attempt for e in pipeline.envelopes()] == [0, 1]


@pytest.mark.asyncio
async def test_successful_retry_clears_pending_fields(pipeline) -> None:
    worker = _worker(pipeline, FlakySender(failures=1), delay=0.001)
    await worker.start()

    await pipeline.enqueue()
    await worker.stop()

    record = await pipeline.store.find_by_id("m-1")
    assert record.status is MessageStatus.SENT
    assert record.retry_attempt is None
    assert record.retry_due_at is None


@pytest.mark.asyncio
async def test_unpersisted_retry_still_fires(pipeline) -> None:
    sender = FlakySender(failures=1)
    worker = _worker(pipeline, sender, delay=0.001)
    pipeline.store.schedule_retry = AsyncMock(  # type: ignore[method-assign]
        side_effect=InfrastructureError("mongo down")
    )
    await worker.start()

    await pipeline.enqueue()
    await worker.stop()

    assert sender.attempts == [1, 2]
    record = await pipeline.store.find_by_id("m-1")
    assert record.status is MessageStatus.SENT


@pytest.mark.asyncio
async def test_sweeper_loop_runs_on_start(pipeline) -> None:
    worker = _worker(pipeline, FlakySender(failures=1), delay=10.0)
    await worker.start()
    await pipeline.enqueue()
    await worker.scheduler.cancel_pending()

    sweeper = RetrySweeper(
        worker, pipeline.store, interval=60.0, grace=0, clock=_far_future
    )
    await sweeper.start()
    try:
        for _ in range(100):
            record = await pipeline.store.find_by_id("m-1")
            if record.status is MessageStatus.SENT:
                break
            await asyncio.sleep(0.01)
    finally:
        await sweeper.stop()

    assert record.status is MessageStatus.SENT
    assert record.attempts == 2
