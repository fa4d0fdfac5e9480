"""Shared fixtures for gateway tests."""

from __future__ import annotations

import itertools

import pytest

from commagg_core.adapters.memory import InMemoryRecordStore
from commagg_core.config import GatewayConfig
from commagg_gateway.service import DedupGateway
from commagg_messaging.memory import InMemoryMessageBus, InMemoryPublisher
from commagg_observability.emitter import LogEmitter


class SequentialIds:
    """Deterministic ``IIDGenerator``: id-1, id-2, ..."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        return f"id-{next(self._counter)}"


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig(persist_delay=0.0, publish_delay=0.0)


@pytest.fixture
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus()


@pytest.fixture
def publisher(bus: InMemoryMessageBus) -> InMemoryPublisher:
    return InMemoryPublisher(bus)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def id_generator() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def gateway(
    store: InMemoryRecordStore,
    publisher: InMemoryPublisher,
    config: GatewayConfig,
    id_generator: SequentialIds,
) -> DedupGateway:
    return DedupGateway(
        store,
        publisher,
        LogEmitter(publisher, "gateway"),
        config,
        id_generator=id_generator,
    )
