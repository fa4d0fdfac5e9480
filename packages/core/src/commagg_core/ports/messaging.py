from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Mapping


@runtime_checkable
class IMessagePublisher(Protocol):
    """
    Port for publishing messages to a broker route.

    Infrastructure packages provide concrete adapters.
    """

    async def publish(self, route: str, message: Any, **kwargs: Any) -> None:
        """
        Publish *message* to *route*.

        Args:
            route: Routing key (channel name or the shared log route).
            message: A pydantic model (envelope, log event) or raw bytes.
            **kwargs: Transport metadata (``persistent``, ``headers``).
        """
        ...


@runtime_checkable
class IDelivery(Protocol):
    """
    One message handed to a consumer under manual acknowledgment.

    Exactly one of ``ack`` / ``nack`` settles it; the broker keeps it
    in flight (counted against prefetch) until then.
    """

    @property
    def body(self) -> bytes: ...

    @property
    def headers(self) -> Mapping[str, Any]: ...

    @property
    def redelivered(self) -> bool: ...

    async def ack(self) -> None: ...

    async def nack(self, requeue: bool = True) -> None: ...


@runtime_checkable
class IMessageConsumer(Protocol):
    """
    Port for consuming messages from a broker queue.

    Infrastructure packages provide concrete adapters.
    """

    async def subscribe(
        self,
        route: str,
        handler: Callable[[IDelivery], Coroutine[Any, Any, None]],
        queue_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Subscribe *handler* to *route*.

        Args:
            route: Routing key to bind.
            handler: Async callable invoked with each ``IDelivery``;
                it is responsible for settling the delivery.
            queue_name: Optional queue name.
            **kwargs: Transport-specific options (``prefetch_count``).
        """
        ...
