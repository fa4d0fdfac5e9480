"""MongoConnectionManager: one Motor client per process."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import MongoConnectionError

if TYPE_CHECKING:
    from motor.motor_asyncio import (
        AsyncIOMotorClient,
        AsyncIOMotorCollection,
        AsyncIOMotorDatabase,
    )

logger = logging.getLogger(__name__)


class MongoConnectionManager:
    """Owns the Motor client shared by the record store and the log store.

    ``client`` may be passed in (tests hand in a mongomock client); otherwise
    ``connect()`` builds one from *url*. Datetimes come back timezone-aware.
    """

    def __init__(
        self,
        url: str = "mongodb://localhost:27017",
        *,
        database: str | None = None,
        server_selection_timeout_ms: int = 5000,
        client: AsyncIOMotorClient[Any] | None = None,
        **client_options: Any,
    ) -> None:
        self._url = url
        self._database = database
        self._client_options = {
            "serverSelectionTimeoutMS": server_selection_timeout_ms,
            "tz_aware": True,
            **client_options,
        }
        self._client = client

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> AsyncIOMotorClient[Any]:
        if self._client is None:
            from motor.motor_asyncio import AsyncIOMotorClient

            try:
                self._client = AsyncIOMotorClient(self._url, **self._client_options)
            except Exception as e:
                raise MongoConnectionError(f"Cannot create client: {e}") from e
            logger.info("MongoDB client created for database %s", self._database)
        return self._client

    @property
    def client(self) -> AsyncIOMotorClient[Any]:
        if self._client is None:
            raise MongoConnectionError("Not connected; call connect() first")
        return self._client

    def get_database(self, name: str | None = None) -> AsyncIOMotorDatabase[Any]:
        """Return *name*, the configured database or the URL's default one."""
        name = name or self._database
        if name:
            return self.client.get_database(name)
        try:
            return self.client.get_database()
        except Exception as e:
            raise MongoConnectionError(
                "No database configured and the URL names none"
            ) from e

    def collection(
        self, name: str, database: str | None = None
    ) -> AsyncIOMotorCollection[Any]:
        return self.get_database(database)[name]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def health_check(self, timeout: float = 5.0) -> bool:
        """``ping`` within *timeout*; False when unreachable or not connected."""
        if self._client is None:
            return False
        try:
            await asyncio.wait_for(
                self._client.admin.command("ping"), timeout=timeout
            )
        except Exception:  # noqa: BLE001
            logger.debug("MongoDB ping failed", exc_info=True)
            return False
        return True
