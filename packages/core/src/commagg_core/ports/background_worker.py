"""IBackgroundWorker: lifecycle protocol for long-running consumers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IBackgroundWorker(Protocol):
    """
    General lifecycle protocol for background workers.

    Used by: ``ChannelWorker``, ``LogSink``, ``PrimaryReconnector``.
    """

    async def start(self) -> None:
        """Start the background process."""
        ...

    async def stop(self) -> None:
        """Stop the background process gracefully."""
        ...
