"""Tests for RetryPolicy and retry_async."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from commagg_core.primitives.exceptions import ConflictError, InfrastructureError
from commagg_messaging import retry as retry_module
from commagg_messaging.retry import RetryPolicy, retry_async


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []

    async def _fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    monkeypatch.setattr(retry_module, "_sleep", _fake_sleep)
    return recorded


def test_should_retry() -> None:
    policy = RetryPolicy(max_attempts=3)
    assert policy.should_retry(1) is True
    assert policy.should_retry(2) is True
    assert policy.should_retry(3) is False
    assert policy.should_retry(0) is False


def test_delay_for_attempt_exponential() -> None:
    policy = RetryPolicy(base_delay=1.0, max_delay=100.0, jitter=False)
    assert policy.delay_for_attempt(1) == 1.0
    assert policy.delay_for_attempt(2) == 2.0
    assert policy.delay_for_attempt(3) == 4.0
    assert policy.delay_for_attempt(4) == 8.0
    assert policy.delay_for_attempt(10) == 100.0  # capped


def test_delay_with_jitter_in_range() -> None:
    policy = RetryPolicy(base_delay=2.0, max_delay=10.0, jitter=True)
    for _ in range(20):
        d = policy.delay_for_attempt(2)
        assert 2.0 <= d <= 6.0


def test_invalid_max_attempts_raises() -> None:
    with pytest.raises(ValueError, match=r"max_attempts"):
        RetryPolicy(max_attempts=0)


def test_delay_for_attempt_zero_returns_zero() -> None:
    policy = RetryPolicy(base_delay=1.0, jitter=False)
    assert policy.delay_for_attempt(0) == 0.0


def test_invalid_delays_raise() -> None:
    with pytest.raises(ValueError, match="base_delay and max_delay"):
        RetryPolicy(base_delay=-0.1, max_delay=1.0)
    with pytest.raises(ValueError, match="base_delay must be <= max_delay"):
        RetryPolicy(base_delay=10.0, max_delay=1.0)


@pytest.mark.asyncio
async def test_retry_async_succeeds_after_failures(sleeps: list[float]) -> None:
    operation = AsyncMock(
        side_effect=[InfrastructureError("down"), InfrastructureError("down"), "ok"]
    )
    result = await retry_async(
        operation, RetryPolicy(max_attempts=5, base_delay=0.2, max_delay=5.0)
    )
    assert result == "ok"
    assert operation.await_count == 3
    assert sleeps == [0.2, 0.4]


@pytest.mark.asyncio
async def test_retry_async_reraises_after_exhaustion(sleeps: list[float]) -> None:
    operation = AsyncMock(side_effect=InfrastructureError("still down"))
    with pytest.raises(InfrastructureError, match="still down"):
        await retry_async(operation, RetryPolicy(max_attempts=3, base_delay=1.0))
    assert operation.await_count == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_async_give_up_on(sleeps: list[float]) -> None:
    operation = AsyncMock(side_effect=ConflictError("content_hash", "h"))
    with pytest.raises(ConflictError):
        await retry_async(
            operation,
            RetryPolicy(max_attempts=3),
            give_up_on=(ConflictError,),
        )
    assert operation.await_count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_retry_async_only_retries_listed_errors(sleeps: list[float]) -> None:
    operation = AsyncMock(side_effect=KeyError("bug"))
    with pytest.raises(KeyError):
        await retry_async(
            operation,
            RetryPolicy(max_attempts=3),
            retry_on=(InfrastructureError,),
        )
    assert operation.await_count == 1
