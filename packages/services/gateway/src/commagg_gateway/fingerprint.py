"""Content fingerprint used to collapse identical delivery requests."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from commagg_core.domain.messages import DeliveryRequest


def canonical_fields(request: DeliveryRequest) -> dict[str, Any]:
    """The semantically significant fields, keyed by their wire names."""
    return {
        "channel": request.channel,
        "to": request.to,
        "from": request.sender,
        "subject": request.subject,
        "body": request.body,
        "metadata": request.metadata,
    }


def content_hash(request: DeliveryRequest) -> str:
    """SHA-256 over the canonical JSON form (sorted keys at every level)."""
    canonical = json.dumps(
        canonical_fields(request),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
