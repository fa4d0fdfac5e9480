from __future__ import annotations

import uuid
from typing import Protocol


class IIDGenerator(Protocol):
    """
    Protocol for identifier generation.
    Message ids, trace ids and span ids all come from one generator so tests
    can substitute a deterministic sequence.
    """

    def next_id(self) -> str:
        """Generates the next unique identifier."""
        ...


class UUID4Generator(IIDGenerator):
    """
    Default ID generator using UUIDv4.
    """

    def next_id(self) -> str:
        """Returns a string representation of a random UUIDv4."""
        return str(uuid.uuid4())
