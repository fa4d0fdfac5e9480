"""ElasticsearchIndexStore: primary, searchable store for log events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from commagg_core.ports.log_store import ILogStore

from .exceptions import IndexStoreError

logger = logging.getLogger(__name__)

HEALTHY_CLUSTER_STATUSES = frozenset({"green", "yellow"})


class ElasticsearchIndexStore(ILogStore):
    """``ILogStore`` writing one document per event into a single index.

    The health probe is ``cluster.health`` with a short request timeout; only
    a ``green`` or ``yellow`` status counts as healthy.
    """

    def __init__(
        self,
        url: str = "http://localhost:9200",
        *,
        index: str = "comm-logs",
        client: AsyncElasticsearch | None = None,
        **client_kwargs: Any,
    ) -> None:
        self._url = url
        self._index = index
        self._client_kwargs = client_kwargs
        self._client = client

    @property
    def client(self) -> AsyncElasticsearch:
        if self._client is None:
            self._client = AsyncElasticsearch(self._url, **self._client_kwargs)
        return self._client

    @property
    def index(self) -> str:
        return self._index

    async def write(self, document: dict[str, Any]) -> None:
        try:
            await self.client.index(index=self._index, document=document)
        except (ApiError, TransportError, OSError) as e:
            raise IndexStoreError(f"Index write to {self._index} failed: {e}") from e

    async def health_check(self, timeout: float = 5.0) -> bool:
        try:
            response = await asyncio.wait_for(
                self.client.options(request_timeout=timeout).cluster.health(),
                timeout=timeout,
            )
        except Exception:  # noqa: BLE001
            logger.debug("Elasticsearch health probe failed", exc_info=True)
            return False
        body = getattr(response, "body", response)
        status = body.get("status") if isinstance(body, dict) else None
        return status in HEALTHY_CLUSTER_STATUSES

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
