from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ILogStore(Protocol):
    """
    Write-only port for log documents (search index or durable collection).
    """

    async def write(self, document: dict[str, Any]) -> None:
        """
        Append one log document.

        Raises:
            InfrastructureError: if the store rejects the write.
        """
        ...

    async def health_check(self, timeout: float = 5.0) -> bool:
        """Return True only on an explicit positive signal within *timeout*."""
        ...
