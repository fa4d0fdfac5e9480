"""Shared fixtures for channel worker tests."""

from __future__ import annotations

import json

import pytest

from commagg_core.adapters.memory import InMemoryRecordStore
from commagg_core.domain.messages import MessageRecord
from commagg_messaging.envelope import RoutedEnvelope
from commagg_messaging.memory import (
    InMemoryConsumer,
    InMemoryMessageBus,
    InMemoryPublisher,
)


class Pipeline:
    """Bus, store and helpers for driving a ChannelWorker end to end."""

    def __init__(self) -> None:
        self.bus = InMemoryMessageBus(delivery_limit=4)
        self.publisher = InMemoryPublisher(self.bus)
        self.consumer = InMemoryConsumer(self.bus)
        self.store = InMemoryRecordStore()

    async def enqueue(
        self, message_id: str = "m-1", channel: str = "email"
    ) -> RoutedEnvelope:
        record = MessageRecord(
            message_id=message_id,
            content_hash=f"hash-{message_id}",
            channel=channel,
            to="a@b.com",
            body="hi",
            trace_id=f"trace-{message_id}",
        )
        await self.store.create(record)
        envelope = RoutedEnvelope.for_record(record)
        await self.publisher.publish(channel, envelope)
        return envelope

    def envelopes(self, channel: str = "email") -> list[RoutedEnvelope]:
        return self.bus.decode_published(channel, RoutedEnvelope)

    def log_messages(self) -> list[str]:
        return [json.loads(m.body)["message"] for m in self.bus.get_published("log")]


@pytest.fixture
def pipeline() -> Pipeline:
    return Pipeline()
