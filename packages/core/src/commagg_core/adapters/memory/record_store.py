"""InMemoryRecordStore: dict-backed fake for unit tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from commagg_core.domain.messages import MessageRecord, MessageStatus
from commagg_core.ports.record_store import IRecordStore
from commagg_core.primitives.exceptions import ConflictError

if TYPE_CHECKING:
    import builtins


class InMemoryRecordStore(IRecordStore):
    """In-memory implementation of ``IRecordStore``.

    Enforces the same uniqueness rules as the Mongo adapter: one record per
    ``message_id`` and one per ``content_hash``.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, MessageRecord] = {}
        self._hash_index: dict[str, str] = {}

    async def find_by_hash(self, content_hash: str) -> MessageRecord | None:
        message_id = self._hash_index.get(content_hash)
        return self._by_id.get(message_id) if message_id is not None else None

    async def find_by_id(self, message_id: str) -> MessageRecord | None:
        return self._by_id.get(message_id)

    async def create(self, record: MessageRecord) -> MessageRecord:
        if record.message_id in self._by_id:
            raise ConflictError("message_id", record.message_id)
        if record.content_hash in self._hash_index:
            raise ConflictError("content_hash", record.content_hash)
        self._by_id[record.message_id] = record
        self._hash_index[record.content_hash] = record.message_id
        return record

    async def update_status(
        self,
        message_id: str,
        status: MessageStatus,
        **fields: Any,
    ) -> bool:
        current = self._by_id.get(message_id)
        if current is None or current.is_terminal:
            return False
        update = {**fields, "status": status}
        if status.is_terminal:
            update.update(retry_attempt=None, retry_due_at=None)
        self._replace(current, update)
        return True

    async def schedule_retry(
        self, message_id: str, attempt: int, due_at: datetime
    ) -> bool:
        current = self._by_id.get(message_id)
        if current is None or current.is_terminal:
            return False
        self._replace(current, {"retry_attempt": attempt, "retry_due_at": due_at})
        return True

    async def claim_retry(self, message_id: str, attempt: int) -> bool:
        current = self._by_id.get(message_id)
        if current is None or current.is_terminal:
            return False
        if current.retry_attempt != attempt:
            return False
        self._replace(current, {"retry_attempt": None, "retry_due_at": None})
        return True

    async def find_due_retries(
        self, channel: str, before: datetime, limit: int = 100
    ) -> builtins.list[MessageRecord]:
        due = [
            r
            for r in self._by_id.values()
            if r.channel == channel
            and not r.is_terminal
            and r.retry_due_at is not None
            and r.retry_due_at <= before
        ]
        due.sort(key=lambda r: r.retry_due_at or before)
        return due[:limit]

    def _replace(self, current: MessageRecord, update: dict[str, Any]) -> None:
        self._by_id[current.message_id] = current.model_copy(
            update={**update, "updated_at": datetime.now(timezone.utc)}
        )

    async def health_check(self) -> bool:
        return True

    def list_all(self) -> builtins.list[MessageRecord]:
        """Return all stored records (for test assertions)."""
        return list(self._by_id.values())

    def clear(self) -> None:
        self._by_id.clear()
        self._hash_index.clear()
