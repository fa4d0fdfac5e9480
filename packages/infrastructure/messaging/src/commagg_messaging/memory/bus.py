"""In-memory message bus for testing: routes, acks, requeues and dead letters."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from commagg_core.ports.messaging import IDelivery

from ..exceptions import MessagingError
from ..serialization import EnvelopeSerializer

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterator, Mapping

    from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass
class PublishedMessage:
    """One message accepted by the bus."""

    route: str
    body: bytes
    headers: dict[str, Any]
    persistent: bool


@dataclass
class Settlement:
    """How a consumer settled one delivery."""

    route: str
    body: bytes
    outcome: str  # "ack" | "requeue" | "reject"
    redelivered: bool


class InMemoryDelivery(IDelivery):
    """IDelivery that records its outcome instead of talking to a broker."""

    def __init__(
        self,
        body: bytes,
        headers: Mapping[str, Any] | None = None,
        *,
        redelivered: bool = False,
        delivery_count: int = 1,
    ) -> None:
        self._body = body
        self._headers = dict(headers or {})
        self._redelivered = redelivered
        self.delivery_count = delivery_count
        self.outcome: str | None = None

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def headers(self) -> Mapping[str, Any]:
        return self._headers

    @property
    def redelivered(self) -> bool:
        return self._redelivered

    @property
    def settled(self) -> bool:
        return self.outcome is not None

    async def ack(self) -> None:
        self._settle("ack")

    async def nack(self, requeue: bool = True) -> None:
        self._settle("requeue" if requeue else "reject")

    def _settle(self, outcome: str) -> None:
        if self.outcome is not None:
            raise MessagingError(f"Delivery already settled ({self.outcome})")
        self.outcome = outcome


@dataclass
class _Route:
    handlers: list[Any] = field(default_factory=list)
    cursor: Iterator[int] | None = None

    def next_handler(self) -> Any:
        if self.cursor is None:
            self.cursor = itertools.cycle(range(len(self.handlers)))
        return self.handlers[next(self.cursor)]


class InMemoryMessageBus:
    """Shared bus: publish records the message and dispatches it to a consumer.

    Handlers registered on the same route compete (round-robin), as consumers
    of one queue do. A delivery requeued with ``nack(requeue=True)`` is
    redelivered immediately until ``delivery_limit`` is reached, then moved
    to ``dead_letters``. Rejected deliveries are dropped.
    """

    def __init__(
        self,
        *,
        delivery_limit: int = 10,
        serializer: EnvelopeSerializer | None = None,
    ) -> None:
        self._serializer = serializer or EnvelopeSerializer()
        self._delivery_limit = delivery_limit
        self._routes: dict[str, _Route] = {}
        self._messages: list[PublishedMessage] = []
        self.settlements: list[Settlement] = []
        self.dead_letters: list[PublishedMessage] = []
        self.fail_publish: Exception | None = None

    def register(
        self,
        route: str,
        handler: Callable[[IDelivery], Coroutine[Any, Any, None]],
    ) -> None:
        """Register a handler for the route."""
        entry = self._routes.setdefault(route, _Route())
        entry.handlers.append(handler)
        entry.cursor = None

    def encode(self, message: BaseModel | bytes | dict[str, Any]) -> bytes:
        if isinstance(message, bytes):
            return message
        return self._serializer.serialize(message)

    async def publish(self, route: str, message: Any, **kwargs: Any) -> None:
        """Record the message and deliver it to one handler for the route."""
        if self.fail_publish is not None:
            raise self.fail_publish
        body = self.encode(message)
        headers: dict[str, Any] = dict(kwargs.get("headers") or {})
        trace_id = getattr(message, "trace_id", None)
        if trace_id:
            headers.setdefault("trace_id", trace_id)
        published = PublishedMessage(
            route=route,
            body=body,
            headers=headers,
            persistent=bool(kwargs.get("persistent", True)),
        )
        self._messages.append(published)
        await self._dispatch(published)

    async def _dispatch(self, published: PublishedMessage) -> None:
        entry = self._routes.get(published.route)
        if entry is None or not entry.handlers:
            return
        for count in range(1, self._delivery_limit + 1):
            delivery = InMemoryDelivery(
                published.body,
                published.headers,
                redelivered=count > 1,
                delivery_count=count,
            )
            handler = entry.next_handler()
            try:
                await handler(delivery)
            except Exception:
                logger.exception(
                    "Unhandled error consuming from %s", published.route
                )
                if not delivery.settled:
                    await delivery.nack(requeue=True)
            if not delivery.settled:
                await delivery.ack()
            self.settlements.append(
                Settlement(
                    route=published.route,
                    body=published.body,
                    outcome=delivery.outcome or "ack",
                    redelivered=delivery.redelivered,
                )
            )
            if delivery.outcome != "requeue":
                return
        logger.warning(
            "Delivery limit %d reached on %s; dead-lettering",
            self._delivery_limit,
            published.route,
        )
        self.dead_letters.append(published)

    def get_published(self, route: str | None = None) -> list[PublishedMessage]:
        """Return published messages in order, optionally for one route."""
        if route is None:
            return list(self._messages)
        return [m for m in self._messages if m.route == route]

    def decode_published(self, route: str, model: type[Any]) -> list[Any]:
        """Decode every body published on *route* into *model*."""
        return [
            self._serializer.deserialize(m.body, model)
            for m in self.get_published(route)
        ]

    def outcomes(self, route: str | None = None) -> list[str]:
        return [
            s.outcome for s in self.settlements if route is None or s.route == route
        ]

    def clear(self) -> None:
        """Clear published messages, settlements and handlers (for test teardown)."""
        self._messages.clear()
        self.settlements.clear()
        self.dead_letters.clear()
        self._routes.clear()
