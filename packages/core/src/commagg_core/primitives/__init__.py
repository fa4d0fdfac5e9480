"""Primitives: exceptions, ID generation."""

from __future__ import annotations

from .exceptions import (
    CommaggError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PersistenceError,
    PoisonPayloadError,
    RecordNotFoundError,
    TransientDeliveryError,
    ValidationError,
)
from .id_generator import IIDGenerator, UUID4Generator

__all__ = [
    "CommaggError",
    "ConflictError",
    "IIDGenerator",
    "InfrastructureError",
    "NotFoundError",
    "PersistenceError",
    "PoisonPayloadError",
    "RecordNotFoundError",
    "TransientDeliveryError",
    "UUID4Generator",
    "ValidationError",
]
