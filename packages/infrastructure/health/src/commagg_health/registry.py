"""HealthRegistry: named component probes for one process."""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

UP = "up"
DOWN = "down"


class HealthRegistry:
    """Aggregates component probes.

    A probe may be a plain callable or return an awaitable; it runs under
    ``check_timeout`` and any exception counts as down.
    """

    def __init__(self, *, check_timeout: float = 5.0) -> None:
        self._probes: dict[str, Callable[[], Any]] = {}
        self._check_timeout = check_timeout

    def register(self, name: str, probe: Callable[[], Any]) -> None:
        self._probes[name] = probe

    async def _probe(self, name: str, probe: Callable[[], Any]) -> str:
        try:
            value = probe()
            if inspect.isawaitable(value):
                value = await asyncio.wait_for(value, timeout=self._check_timeout)
        except Exception:  # noqa: BLE001
            logger.warning("Health probe %s failed", name, exc_info=True)
            return DOWN
        return UP if value else DOWN

    async def check_all(self) -> dict[str, str]:
        """Run every probe concurrently; returns ``{component: "up" | "down"}``."""
        names = list(self._probes)
        states = await asyncio.gather(
            *(self._probe(name, self._probes[name]) for name in names)
        )
        return dict(zip(names, states))

    async def status(self) -> dict[str, Any]:
        components = await self.check_all()
        healthy = all(state == UP for state in components.values())
        return {
            "status": "healthy" if healthy else "unhealthy",
            "components": components,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
