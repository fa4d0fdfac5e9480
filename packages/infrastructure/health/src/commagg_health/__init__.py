"""Health checks for commagg infrastructure components."""

from __future__ import annotations

from .checks import ComponentCheck, MessageBrokerHealthCheck, StoreHealthCheck
from .registry import DOWN, UP, HealthRegistry

__all__ = [
    "DOWN",
    "UP",
    "ComponentCheck",
    "HealthRegistry",
    "MessageBrokerHealthCheck",
    "StoreHealthCheck",
]
