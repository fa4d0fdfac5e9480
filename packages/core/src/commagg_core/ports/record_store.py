from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from ..domain.messages import MessageRecord, MessageStatus


@runtime_checkable
class IRecordStore(Protocol):
    """
    Persistence port for message records.

    Uniqueness on ``message_id`` and ``content_hash`` is the only
    concurrency control in the pipeline.
    """

    async def find_by_hash(self, content_hash: str) -> MessageRecord | None:
        """Return the record with this content hash, or None."""
        ...

    async def find_by_id(self, message_id: str) -> MessageRecord | None:
        """Return the record with this message id, or None."""
        ...

    async def create(self, record: MessageRecord) -> MessageRecord:
        """
        Insert a new record.

        Raises:
            ConflictError: if ``message_id`` or ``content_hash`` already exists.
        """
        ...

    async def update_status(
        self,
        message_id: str,
        status: MessageStatus,
        **fields: Any,
    ) -> bool:
        """
        Set *status* (and *fields*, e.g. ``attempts``, ``last_error``).

        Only applies while the stored status is not terminal. A terminal
        status also clears any pending retry. Returns True when the record was
        updated.
        """
        ...

    async def schedule_retry(
        self, message_id: str, attempt: int, due_at: datetime
    ) -> bool:
        """Record that retry *attempt* is due at *due_at* (non-terminal only)."""
        ...

    async def claim_retry(self, message_id: str, attempt: int) -> bool:
        """
        Atomically take ownership of pending retry *attempt*.

        Clears the pending retry and returns True only for the one caller that
        finds it still pending; everyone else gets False.
        """
        ...

    async def find_due_retries(
        self, channel: str, before: datetime, limit: int = 100
    ) -> list[MessageRecord]:
        """Non-terminal records on *channel* whose retry was due by *before*."""
        ...

    async def health_check(self) -> bool:
        """Return True if the store is reachable."""
        ...
