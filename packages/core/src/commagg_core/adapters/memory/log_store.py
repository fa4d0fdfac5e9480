"""InMemoryLogStore: list-backed log store with switchable health."""

from __future__ import annotations

from typing import Any

from commagg_core.ports.log_store import ILogStore
from commagg_core.primitives.exceptions import InfrastructureError


class InMemoryLogStore(ILogStore):
    """Test double for a primary or secondary log store.

    ``healthy`` drives ``health_check``; ``fail_writes`` makes every write
    raise, independently of health.
    """

    def __init__(self, *, healthy: bool = True, fail_writes: bool = False) -> None:
        self.documents: list[dict[str, Any]] = []
        self.healthy = healthy
        self.fail_writes = fail_writes
        self.write_attempts = 0
        self.health_checks = 0

    async def write(self, document: dict[str, Any]) -> None:
        self.write_attempts += 1
        if self.fail_writes:
            raise InfrastructureError("log store write rejected")
        self.documents.append(dict(document))

    async def health_check(self, timeout: float = 5.0) -> bool:  # noqa: ARG002
        self.health_checks += 1
        return self.healthy

    def messages(self) -> list[str]:
        """Return the ``message`` field of every stored document."""
        return [str(d.get("message")) for d in self.documents]
