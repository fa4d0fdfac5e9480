"""Shared fixtures for log sink tests."""

from __future__ import annotations

import pytest

from commagg_core.adapters.memory import InMemoryLogStore
from commagg_core.config import SinkConfig
from commagg_messaging.memory import (
    InMemoryConsumer,
    InMemoryMessageBus,
    InMemoryPublisher,
)


@pytest.fixture
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus()


@pytest.fixture
def publisher(bus: InMemoryMessageBus) -> InMemoryPublisher:
    return InMemoryPublisher(bus)


@pytest.fixture
def consumer(bus: InMemoryMessageBus) -> InMemoryConsumer:
    return InMemoryConsumer(bus)


@pytest.fixture
def primary() -> InMemoryLogStore:
    return InMemoryLogStore()


@pytest.fixture
def secondary() -> InMemoryLogStore:
    return InMemoryLogStore()


@pytest.fixture
def config() -> SinkConfig:
    return SinkConfig(
        health_timeout=0.05,
        retry_interval=0.01,
        startup_timeout=0.0,
        startup_poll_interval=0.01,
        failure_threshold=3,
    )
