"""InMemoryConsumer: registers handlers on an InMemoryMessageBus."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from commagg_core.ports.messaging import IDelivery, IMessageConsumer

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from .bus import InMemoryMessageBus


@dataclass(frozen=True)
class Subscription:
    route: str
    queue_name: str | None
    options: dict[str, Any] = field(default_factory=dict)


class InMemoryConsumer(IMessageConsumer):
    """Consumer side of the in-memory bus.

    Handlers run inside ``publish()`` of whoever shares the bus. Queue names
    and broker options are only recorded in ``subscriptions`` so tests can
    check what a worker asked for.
    """

    def __init__(self, bus: InMemoryMessageBus) -> None:
        self._bus = bus
        self.subscriptions: list[Subscription] = []

    async def subscribe(
        self,
        route: str,
        handler: Callable[[IDelivery], Coroutine[Any, Any, None]],
        queue_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.subscriptions.append(Subscription(route, queue_name, dict(kwargs)))
        self._bus.register(route, handler)

    async def health_check(self) -> bool:
        return self._bus.fail_publish is None
