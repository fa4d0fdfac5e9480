"""Senders: the provider-facing side of a channel worker."""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from commagg_core.primitives.exceptions import TransientDeliveryError

if TYPE_CHECKING:
    from commagg_messaging.envelope import RoutedEnvelope

logger = logging.getLogger(__name__)


@runtime_checkable
class ISender(Protocol):
    """Delivers one envelope to its destination.

    Raises ``TransientDeliveryError`` for failures worth retrying.
    """

    async def send(self, envelope: RoutedEnvelope) -> None: ...


class SimulatedSender(ISender):
    """Stand-in provider that fails with probability ``fail_rate``.

    ``fail_rate=0`` always succeeds, ``fail_rate=1`` always fails. Every call is
    recorded in ``calls`` as ``(message_id, attempt)``; only the latest
    *history_size* calls are kept.
    """

    def __init__(
        self,
        fail_rate: float = 0.2,
        *,
        latency: float = 0.0,
        rng: random.Random | None = None,
        history_size: int = 1000,
    ) -> None:
        if not 0.0 <= fail_rate <= 1.0:
            raise ValueError("fail_rate must be within [0, 1]")
        self._fail_rate = fail_rate
        self._latency = latency
        self._rng = rng or random.Random()  # noqa: S311
        self.calls: deque[tuple[str, int]] = deque(maxlen=history_size)

    async def send(self, envelope: RoutedEnvelope) -> None:
        self.calls.append((envelope.message_id, envelope.attempt + 1))
        if self._latency > 0:
            await asyncio.sleep(self._latency)
        if self._fail_rate > 0 and self._rng.random() < self._fail_rate:
            raise TransientDeliveryError(
                envelope.channel, envelope.to, "Simulated provider error"
            )
        logger.debug("Sent %s via %s", envelope.message_id, envelope.channel)

    def attempts_for(self, message_id: str) -> int:
        return sum(1 for mid, _ in self.calls if mid == message_id)
