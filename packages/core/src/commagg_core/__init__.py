"""commagg-core: shared models, ports and errors for the delivery pipeline.

Only pydantic / pydantic-settings; no broker or store drivers.
"""

from __future__ import annotations

from .adapters.memory import InMemoryLogStore, InMemoryRecordStore
from .config import (
    LOG_ROUTE,
    GatewayConfig,
    Settings,
    SinkConfig,
    WorkerConfig,
    channel_queue,
)
from .domain import (
    Channel,
    DeliveryRequest,
    MessageRecord,
    MessageStatus,
)
from .ports import (
    IBackgroundWorker,
    IDelivery,
    ILogStore,
    IMessageConsumer,
    IMessagePublisher,
    IRecordStore,
)
from .primitives.exceptions import (
    CommaggError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PersistenceError,
    PoisonPayloadError,
    RecordNotFoundError,
    TransientDeliveryError,
    ValidationError,
)
from .tracing import (
    generate_span_id,
    generate_trace_id,
    get_span_id,
    get_trace_id,
    trace_scope,
)

__all__ = [
    "LOG_ROUTE",
    "Channel",
    "CommaggError",
    "ConflictError",
    "DeliveryRequest",
    "GatewayConfig",
    "IBackgroundWorker",
    "IDelivery",
    "ILogStore",
    "IMessageConsumer",
    "IMessagePublisher",
    "IRecordStore",
    "InMemoryLogStore",
    "InMemoryRecordStore",
    "InfrastructureError",
    "MessageRecord",
    "MessageStatus",
    "NotFoundError",
    "PersistenceError",
    "PoisonPayloadError",
    "RecordNotFoundError",
    "Settings",
    "SinkConfig",
    "TransientDeliveryError",
    "ValidationError",
    "WorkerConfig",
    "channel_queue",
    "generate_span_id",
    "generate_trace_id",
    "get_span_id",
    "get_trace_id",
    "trace_scope",
]
