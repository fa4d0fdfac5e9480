"""EnvelopeSerializer: newline-free JSON roundtrip for broker payloads."""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import MalformedPayloadError, MessagingSerializationError

M = TypeVar("M", bound=BaseModel)


def _json_serializer(obj: Any) -> Any:
    """Serialize datetime and other non-JSON types."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class EnvelopeSerializer:
    """Serialize/deserialize pydantic models to/from compact UTF-8 JSON bytes.

    Field aliases are used on the wire (``from`` rather than ``sender``).
    """

    def serialize(self, message: BaseModel | dict[str, Any]) -> bytes:
        """Encode a model (or plain dict) to JSON bytes."""
        try:
            if isinstance(message, BaseModel):
                data = message.model_dump(mode="json", by_alias=True)
            else:
                data = message
            return json.dumps(
                data,
                default=_json_serializer,
                separators=(",", ":"),
                ensure_ascii=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise MessagingSerializationError(str(e)) from e

    def deserialize(self, raw: bytes, model: type[M]) -> M:
        """Decode JSON bytes into *model*.

        Raises:
            MalformedPayloadError: on invalid UTF-8, JSON or schema.
        """
        data = self.decode(raw)
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise MalformedPayloadError(str(e)) from e

    def decode(self, raw: bytes) -> dict[str, Any]:
        """Decode JSON bytes into a plain dict."""
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayloadError(str(e)) from e
        if not isinstance(data, dict):
            raise MalformedPayloadError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        return data
