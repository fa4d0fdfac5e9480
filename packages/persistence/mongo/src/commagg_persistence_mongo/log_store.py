"""MongoLogStore: durable fallback collection for log events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from commagg_core.ports.log_store import ILogStore

from .exceptions import MongoPersistenceError
from .indexes import ensure_log_indexes

if TYPE_CHECKING:
    from .connection import MongoConnectionManager


class MongoLogStore(ILogStore):
    """Append-only ``logs`` collection used as the log sink's secondary store."""

    COLLECTION = "logs"

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
        await ensure_log_indexes(
            self._connection, self._database_name, self._collection_name
        )

    async def write(self, document: dict[str, Any]) -> None:
        try:
            # insert_one adds _id to the dict it is given
            await self._collection().insert_one(dict(document))
        except PyMongoError as e:
            raise MongoPersistenceError("log write", e) from e

    async def health_check(self, timeout: float = 5.0) -> bool:
        return await self._connection.health_check(timeout)
