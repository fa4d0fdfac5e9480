"""Elasticsearch persistence for commagg: primary log index."""

from __future__ import annotations

from .exceptions import IndexStoreError
from .index_store import ElasticsearchIndexStore

__all__ = [
    "ElasticsearchIndexStore",
    "IndexStoreError",
]
