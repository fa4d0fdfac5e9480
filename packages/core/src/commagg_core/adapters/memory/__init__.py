from .log_store import InMemoryLogStore
from .record_store import InMemoryRecordStore

__all__ = [
    "InMemoryLogStore",
    "InMemoryRecordStore",
]
