"""MongoDB persistence exceptions.

All of them are ``InfrastructureError`` subclasses, so the gateway retries
them and the workers treat them as a store outage.
"""

from __future__ import annotations

from commagg_core.primitives.exceptions import PersistenceError


class MongoPersistenceError(PersistenceError):
    """A driver call on a collection failed."""

    def __init__(self, operation: str, cause: BaseException | str) -> None:
        self.operation = operation
        super().__init__(f"MongoDB {operation} failed: {cause}")


class MongoConnectionError(PersistenceError):
    """The client is missing or could not be created."""
