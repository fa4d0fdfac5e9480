"""Log sink: primary search index with a durable fallback store."""

from __future__ import annotations

from .reconnector import PrimaryReconnector
from .sink import DROPPED, PRIMARY, SECONDARY, LogSink

__all__ = [
    "DROPPED",
    "PRIMARY",
    "SECONDARY",
    "LogSink",
    "PrimaryReconnector",
]
