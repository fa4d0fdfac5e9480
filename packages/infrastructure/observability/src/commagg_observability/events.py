"""LogEvent: structured log/trace record carried to the log sink."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogEvent(BaseModel):
    """One append-only log event. No uniqueness; the sink is best-effort."""

    model_config = ConfigDict(frozen=True, extra="allow")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    service: str
    level: LogLevel = LogLevel.INFO
    trace_id: str | None = None
    span_id: str | None = None
    parent_span_id: str | None = None
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
