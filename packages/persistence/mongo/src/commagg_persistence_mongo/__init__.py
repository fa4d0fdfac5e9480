"""MongoDB persistence for commagg: message records and fallback logs."""

from __future__ import annotations

from .connection import MongoConnectionManager
from .exceptions import MongoConnectionError, MongoPersistenceError
from .indexes import ensure_log_indexes, ensure_message_indexes
from .log_store import MongoLogStore
from .record_store import MongoRecordStore

__all__ = [
    "MongoConnectionError",
    "MongoConnectionManager",
    "MongoLogStore",
    "MongoPersistenceError",
    "MongoRecordStore",
    "ensure_log_indexes",
    "ensure_message_indexes",
]
