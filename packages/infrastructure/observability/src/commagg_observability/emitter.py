"""LogEmitter: single best-effort path from business code to the log route."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from commagg_core.config import LOG_ROUTE
from commagg_core.tracing import get_span_id, get_trace_id

from .events import LogEvent, LogLevel

if TYPE_CHECKING:
    from commagg_core.ports.messaging import IMessagePublisher

_log = logging.getLogger(__name__)

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogEmitter:
    """Publishes LogEvents for one service without ever failing the caller.

    Every event is mirrored to the stdlib logger first, then published with a
    bounded timeout. Publish failures are counted in ``dropped`` and logged at
    debug level; they never propagate.
    """

    def __init__(
        self,
        publisher: IMessagePublisher,
        service: str,
        *,
        timeout: float = 2.0,
        route: str = LOG_ROUTE,
        logger: logging.Logger | None = None,
    ) -> None:
        self._publisher = publisher
        self._service = service
        self._timeout = timeout
        self._route = route
        self._log = logger or logging.getLogger(f"commagg.{service}")
        self.dropped = 0

    @property
    def service(self) -> str:
        return self._service

    async def emit(
        self,
        level: LogLevel,
        message: str,
        *,
        trace_id: str | None = None,
        span_id: str | None = None,
        parent_span_id: str | None = None,
        **payload: Any,
    ) -> bool:
        """Emit one event. Returns False when the event was dropped."""
        event = LogEvent(
            service=self._service,
            level=level,
            trace_id=trace_id or get_trace_id(),
            span_id=span_id or get_span_id(),
            parent_span_id=parent_span_id,
            message=message,
            payload=payload,
        )
        self._log.log(
            _STDLIB_LEVELS[level],
            "%s %s",
            message,
            payload,
            extra={"trace_id": event.trace_id, "span_id": event.span_id},
        )
        try:
            await asyncio.wait_for(
                self._publisher.publish(self._route, event, persistent=True),
                timeout=self._timeout,
            )
        except Exception:  # noqa: BLE001
            self.dropped += 1
            _log.debug("Dropped log event %r", message, exc_info=True)
            return False
        return True

    async def info(self, message: str, **kwargs: Any) -> bool:
        return await self.emit(LogLevel.INFO, message, **kwargs)

    async def warn(self, message: str, **kwargs: Any) -> bool:
        return await self.emit(LogLevel.WARN, message, **kwargs)

    async def error(self, message: str, **kwargs: Any) -> bool:
        return await self.emit(LogLevel.ERROR, message, **kwargs)
