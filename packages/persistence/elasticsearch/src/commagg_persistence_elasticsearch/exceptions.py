"""Elasticsearch index store exceptions."""

from __future__ import annotations

from commagg_core.primitives.exceptions import InfrastructureError


class IndexStoreError(InfrastructureError):
    """Raised when the search index rejects a write or is unreachable."""
