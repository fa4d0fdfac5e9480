"""InMemoryPublisher: IMessagePublisher over an InMemoryMessageBus."""

from __future__ import annotations

from typing import Any

from commagg_core.ports.messaging import IMessagePublisher

from .bus import InMemoryMessageBus, PublishedMessage


class InMemoryPublisher(IMessagePublisher):
    """Publishes onto a bus; consumers sharing the bus run inline.

    Set ``bus.fail_publish`` to an exception to simulate a broker outage.
    """

    def __init__(self, bus: InMemoryMessageBus | None = None) -> None:
        self._bus = bus or InMemoryMessageBus()

    @property
    def bus(self) -> InMemoryMessageBus:
        return self._bus

    async def publish(self, route: str, message: Any, **kwargs: Any) -> None:
        await self._bus.publish(route, message, **kwargs)

    def get_published(self, route: str | None = None) -> list[PublishedMessage]:
        return self._bus.get_published(route)

    def assert_published(self, route: str, count: int = 1) -> None:
        published = self.get_published(route)
        assert len(published) == count, (
            f"Expected {count} message(s) on {route!r}, got {len(published)}"
        )

    async def health_check(self) -> bool:
        return self._bus.fail_publish is None
