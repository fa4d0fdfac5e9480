"""
MongoDB implementation of the message record store.

Documents live in a ``messages`` collection keyed by ``_id = message_id``
with a unique index on ``content_hash``:
    {
        "_id": message_id,
        "content_hash": str,
        "channel": str, "to": str, "from": str | None,
        "subject": str | None, "body": str, "metadata": dict,
        "status": "queued" | "sent" | "failed" | "enqueue_failed",
        "attempts": int,
        "last_error": str | None,
        "retry_attempt": int | None, "retry_due_at": datetime | None,
        "trace_id": str,
        "created_at": datetime,
        "updated_at": datetime
    }
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pymongo.errors import DuplicateKeyError, PyMongoError

from commagg_core.domain.messages import (
    TERMINAL_STATUSES,
    MessageRecord,
    MessageStatus,
)
from commagg_core.ports.record_store import IRecordStore
from commagg_core.primitives.exceptions import ConflictError

from .exceptions import MongoPersistenceError
from .indexes import ensure_message_indexes

if TYPE_CHECKING:
    from .connection import MongoConnectionManager

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"attempts", "last_error"})
_TERMINAL_VALUES = [s.value for s in TERMINAL_STATUSES]


def _to_document(record: MessageRecord) -> dict[str, Any]:
    doc = record.model_dump(mode="python", by_alias=True)
    doc["_id"] = doc.pop("message_id")
    doc["status"] = record.status.value
    return doc


def _from_document(doc: dict[str, Any]) -> MessageRecord:
    data = dict(doc)
    data["message_id"] = data.pop("_id")
    return MessageRecord.model_validate(data)


class MongoRecordStore(IRecordStore):
    """``IRecordStore`` over a Motor collection.

    Uniqueness is enforced by MongoDB (``_id`` and ``uniq_content_hash``);
    duplicate-key errors surface as ``ConflictError``.
    """

    COLLECTION = "messages"

    def __init__(
        self,
        connection: MongoConnectionManager,
        database: str | None = None,
        *,
        collection: str = COLLECTION,
    ) -> None:
        self._connection = connection
        self._database_name = database
        self._collection_name = collection

    def _collection(self) -> Any:
        return self._connection.collection(
            self._collection_name, self._database_name
        )

    async def ensure_indexes(self) -> None:
        await ensure_message_indexes(
            self._connection, self._database_name, self._collection_name
        )

    async def find_by_hash(self, content_hash: str) -> MessageRecord | None:
        try:
            doc = await self._collection().find_one({"content_hash": content_hash})
        except PyMongoError as e:
            raise MongoPersistenceError("find_by_hash", e) from e
        return _from_document(doc) if doc is not None else None

    async def find_by_id(self, message_id: str) -> MessageRecord | None:
        try:
            doc = await self._collection().find_one({"_id": message_id})
        except PyMongoError as e:
            raise MongoPersistenceError("find_by_id", e) from e
        return _from_document(doc) if doc is not None else None

    async def create(self, record: MessageRecord) -> MessageRecord:
        try:
            await self._collection().insert_one(_to_document(record))
        except DuplicateKeyError as e:
            pattern = (e.details or {}).get("keyPattern") or {}
            key = (
                "content_hash"
                if "content_hash" in pattern or "content_hash" in str(e)
                else "message_id"
            )
            value = record.content_hash if key == "content_hash" else record.message_id
            raise ConflictError(key, value) from e
        except PyMongoError as e:
            raise MongoPersistenceError("create", e) from e
        return record

    async def _update_open(
        self,
        operation: str,
        message_id: str,
        update: dict[str, Any],
        **match: Any,
    ) -> bool:
        """``$set`` *update* on a non-terminal record matching *match*."""
        query = {
            "_id": message_id,
            "status": {"$nin": _TERMINAL_VALUES},
            **match,
        }
        update = {**update, "updated_at": datetime.now(timezone.utc)}
        try:
            result = await self._collection().update_one(query, {"$set": update})
        except PyMongoError as e:
            raise MongoPersistenceError(operation, e) from e
        return result.matched_count > 0

    async def update_status(
        self,
        message_id: str,
        status: MessageStatus,
        **fields: Any,
    ) -> bool:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        update = {**fields, "status": status.value}
        if status.is_terminal:
            update.update(retry_attempt=None, retry_due_at=None)
        updated = await self._update_open("update_status", message_id, update)
        if not updated:
            logger.debug(
                "Status update to %s skipped for %s (missing or terminal)",
                status.value,
                message_id,
            )
        return updated

    async def schedule_retry(
        self, message_id: str, attempt: int, due_at: datetime
    ) -> bool:
        return await self._update_open(
            "schedule_retry",
            message_id,
            {"retry_attempt": attempt, "retry_due_at": due_at},
        )

    async def claim_retry(self, message_id: str, attempt: int) -> bool:
        return await self._update_open(
            "claim_retry",
            message_id,
            {"retry_attempt": None, "retry_due_at": None},
            retry_attempt=attempt,
        )

    async def find_due_retries(
        self, channel: str, before: datetime, limit: int = 100
    ) -> list[MessageRecord]:
        query = {
            "channel": channel,
            "status": {"$nin": _TERMINAL_VALUES},
            "retry_due_at": {"$lte": before},
        }
        try:
            cursor = self._collection().find(query).sort("retry_due_at", 1)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise MongoPersistenceError("find_due_retries", e) from e
        return [_from_document(doc) for doc in docs]

    async def health_check(self) -> bool:
        return await self._connection.health_check()
