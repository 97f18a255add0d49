from __future__ import annotations

import asyncio

import httpx
import pytest

from npcchat.errors import ClientError, DataError, ServerError, TransportError
from npcchat.retry import RetryPolicy, retry_async, should_retry_request

pytestmark = pytest.mark.unit


def test_policy_validates_invariants() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(delay_s=-0.1)


@pytest.mark.parametrize(
    ("policy", "attempts"),
    [
        (RetryPolicy(max_retries=0), 1),
        (RetryPolicy(max_retries=3), 4),
        (RetryPolicy(max_retries=3, enabled=False), 1),
    ],
)
def test_max_attempts(policy: RetryPolicy, attempts: int) -> None:
    assert policy.max_attempts == attempts


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ServerError("x"), True),
        (TransportError("x"), True),
        (ClientError("x", status_code=400), False),
        (DataError("x"), False),
        (TimeoutError(), True),
        (ConnectionResetError(), True),
        (httpx.ReadTimeout("slow"), True),
        (ValueError("bug"), False),
        (asyncio.CancelledError(), False),
    ],
)
def test_should_retry_request(exc: BaseException, expected: bool) -> None:
    assert should_retry_request(exc) is expected


def test_should_retry_walks_the_cause_chain() -> None:
    try:
        try:
            raise httpx.ConnectError("refused")
        except httpx.ConnectError as inner:
            raise RuntimeError("wrapper") from inner
    except RuntimeError as outer:
        assert should_retry_request(outer) is True


@pytest.mark.asyncio
async def test_retry_async_returns_first_success() -> None:
    calls = 0

    async def factory() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise ServerError("flaky")
        return "done"

    retries: list[int] = []
    result = await retry_async(
        factory,
        policy=RetryPolicy(max_retries=5, delay_s=0),
        on_retry=lambda idx, _exc: retries.append(idx),
    )

    assert result == "done"
    assert calls == 3
    assert retries == [1, 2]


@pytest.mark.asyncio
async def test_retry_async_reraises_after_exhaustion_and_stamps_attempt() -> None:
    calls = 0

    async def factory() -> str:
        nonlocal calls
        calls += 1
        raise ServerError("down")

    with pytest.raises(ServerError) as exc_info:
        await retry_async(factory, policy=RetryPolicy(max_retries=2, delay_s=0))

    assert calls == 3
    assert exc_info.value.attempt == 3


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_non_retryable() -> None:
    calls = 0

    async def factory() -> str:
        nonlocal calls
        calls += 1
        raise ClientError("nope", status_code=404)

    with pytest.raises(ClientError):
        await retry_async(factory, policy=RetryPolicy(max_retries=3, delay_s=0))

    assert calls == 1


@pytest.mark.asyncio
async def test_retry_async_sleeps_fixed_delay_between_attempts(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("npcchat.retry.asyncio.sleep", fake_sleep)

    async def factory() -> str:
        raise ServerError("down")

    with pytest.raises(ServerError):
        await retry_async(factory, policy=RetryPolicy(max_retries=3, delay_s=1.5))

    assert delays == [1.5, 1.5, 1.5]
