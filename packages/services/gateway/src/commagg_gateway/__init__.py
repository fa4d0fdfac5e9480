"""Dedup gateway: validates, fingerprints, persists and publishes requests."""

from __future__ import annotations

from .api import create_app
from .exceptions import EnqueueError
from .fingerprint import canonical_fields, content_hash
from .service import DedupGateway, SubmissionResult

__all__ = [
    "DedupGateway",
    "EnqueueError",
    "SubmissionResult",
    "canonical_fields",
    "content_hash",
    "create_app",
]
