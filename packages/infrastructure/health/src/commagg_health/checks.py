"""Probes that turn a component's ``health_check`` into an up/down answer."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, ClassVar

logger = logging.getLogger(__name__)


class ComponentCheck:
    """Callable probe over one component.

    Tries each name in ``probe_methods`` and uses the first one the component
    has. Only a literal ``True`` is healthy; errors and timeouts are not.
    """

    probe_methods: ClassVar[tuple[str, ...]] = ("health_check",)

    def __init__(self, component: Any, *, timeout: float = 5.0) -> None:
        self._component = component
        self._timeout = timeout

    async def __call__(self) -> bool:
        for name in self.probe_methods:
            probe = getattr(self._component, name, None)
            if callable(probe):
                return await self._run(name, probe)
        logger.debug("%r exposes none of %s", self._component, self.probe_methods)
        return False

    async def _run(self, name: str, probe: Any) -> bool:
        try:
            result = probe()
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self._timeout)
        except Exception:  # noqa: BLE001
            logger.debug("%s probe on %r failed", name, self._component, exc_info=True)
            return False
        return result is True


class StoreHealthCheck(ComponentCheck):
    """Record store or log store probe."""


class MessageBrokerHealthCheck(ComponentCheck):
    """Broker probe; falls back to ``is_connected`` on bare connections."""

    probe_methods = ("health_check", "is_connected")
