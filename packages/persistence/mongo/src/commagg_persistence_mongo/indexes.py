"""Index definitions for the messages and logs collections."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .connection import MongoConnectionManager


async def create_compound_index(
    connection: MongoConnectionManager,
    database: str | None,
    collection: str,
    keys: list[tuple[str, int]],
    *,
    name: str | None = None,
    unique: bool = False,
) -> str:
    """Create a compound index. keys: [(field, 1|(-1)), ...]. Returns index name."""
    coll = connection.collection(collection, database)
    return await coll.create_index(keys, name=name, unique=unique)


async def create_text_index(
    connection: MongoConnectionManager,
    database: str | None,
    collection: str,
    fields: list[tuple[str, str]],
    *,
    name: str | None = None,
) -> str:
    """Create a text index. fields: [(field_name, 'text'), ...]."""
    coll = connection.collection(collection, database)
    return await coll.create_index(fields, name=name)


async def ensure_message_indexes(
    connection: MongoConnectionManager,
    database: str | None,
    collection: str = "messages",
) -> None:
    """Unique content hash (``_id`` is the message id), status and due-retry indexes."""
    await create_compound_index(
        connection,
        database,
        collection,
        [("content_hash", 1)],
        name="uniq_content_hash",
        unique=True,
    )
    await create_compound_index(
        connection, database, collection, [("status", 1)], name="idx_status"
    )
    await create_compound_index(
        connection,
        database,
        collection,
        [("channel", 1), ("retry_due_at", 1)],
        name="idx_channel_retry_due",
    )


async def ensure_log_indexes(
    connection: MongoConnectionManager,
    database: str | None,
    collection: str = "logs",
) -> None:
    """Trace lookup and free-text search over the fallback log collection."""
    await create_compound_index(
        connection,
        database,
        collection,
        [("trace_id", 1), ("timestamp", 1)],
        name="idx_trace_timestamp",
    )
    await create_text_index(
        connection,
        database,
        collection,
        [("message", "text")],
        name="txt_message",
    )
