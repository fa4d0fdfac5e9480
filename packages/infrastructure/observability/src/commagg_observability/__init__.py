"""Observability: log events, the log emitter and JSON logging."""

from __future__ import annotations

from .emitter import LogEmitter
from .events import LogEvent, LogLevel
from .structured_logging import JSONFormatter, setup_logging

__all__ = [
    "JSONFormatter",
    "LogEmitter",
    "LogEvent",
    "LogLevel",
    "setup_logging",
]
