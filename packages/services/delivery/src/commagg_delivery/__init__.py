"""Channel workers: delivery attempts with bounded exponential-backoff retries."""

from __future__ import annotations

from .recovery import RetrySweeper
from .scheduler import BackoffScheduler
from .sender import ISender, SimulatedSender
from .worker import ChannelWorker

__all__ = [
    "BackoffScheduler",
    "ChannelWorker",
    "ISender",
    "RetrySweeper",
    "SimulatedSender",
]
