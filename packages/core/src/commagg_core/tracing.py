"""Trace and span id management: threads one trace through every hop."""

from __future__ import annotations

import contextlib
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

# ContextVars for trace/span tracking across async boundaries.
_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)
_span_id: ContextVar[str | None] = ContextVar("span_id", default=None)


def get_trace_id() -> str | None:
    """Get current trace ID from context."""
    return _trace_id.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set trace ID in context."""
    _trace_id.set(trace_id)


def get_span_id() -> str | None:
    """Get current span ID from context."""
    return _span_id.get()


def set_span_id(span_id: str | None) -> None:
    """Set span ID in context."""
    _span_id.set(span_id)


def generate_trace_id() -> str:
    """Generate a new trace ID."""
    return str(uuid.uuid4())


def generate_span_id() -> str:
    """Generate a new span ID."""
    return str(uuid.uuid4())


def get_context_vars() -> dict[str, str | None]:
    """Get all trace context variables (e.g. for log formatting)."""
    return {
        "trace_id": get_trace_id(),
        "span_id": get_span_id(),
    }


@contextlib.contextmanager
def trace_scope(trace_id: str | None, span_id: str | None) -> Iterator[None]:
    """Bind *trace_id* / *span_id* for the duration of the block."""
    trace_token = _trace_id.set(trace_id)
    span_token = _span_id.set(span_id)
    try:
        yield
    finally:
        _span_id.reset(span_token)
        _trace_id.reset(trace_token)
