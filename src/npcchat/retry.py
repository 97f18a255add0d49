"""Minimal async retry with explicit error contracts.

Design goals:
- Small API surface
- Explicit state (policy + attempt counters)
- No brittle substring matching for retry decisions
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, TypeVar

from npcchat.errors import APIError
from npcchat.transports._errors import is_network_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with a fixed delay between attempts."""

    max_retries: int = 3
    delay_s: float = 1.0
    enabled: bool = True

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_retries < 0:
            raise ValueError("RetryPolicy.max_retries must be >= 0")
        if self.delay_s < 0:
            raise ValueError("RetryPolicy.delay_s must be >= 0")

    @property
    def max_attempts(self) -> int:
        """Total attempts allowed, counting the first one."""
        return (self.max_retries if self.enabled else 0) + 1


def should_retry_request(exc: BaseException) -> bool:
    """Return True when a chat request failure should be retried.

    Contract:
    - Cancellation is never retried.
    - APIError is retried only when its classification marks it retryable.
    - Raw timeout/connection exceptions are retried as network failures.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False

    if isinstance(exc, APIError):
        return exc.retryable is True

    return is_network_error(exc)


async def retry_async(
    factory: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    should_retry: Callable[[BaseException], bool] = should_retry_request,
    on_retry: Callable[[int, BaseException], None] | None = None,
) -> T:
    """Run an async factory with bounded, fixed-delay retries.

    *on_retry* is called with the 1-based retry index and the failure just
    before each delay.
    """
    last_exc: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await factory()
        except Exception as exc:
            last_exc = exc
            if isinstance(exc, APIError):
                exc.attempt = attempt
            if not should_retry(exc) or attempt >= policy.max_attempts:
                raise

            log.warning(
                "Retryable failure, attempting retry %d/%d in %.2fs: %s",
                attempt,
                policy.max_retries,
                policy.delay_s,
                exc,
            )
            if on_retry is not None:
                on_retry(attempt, exc)
            if policy.delay_s > 0:
                await asyncio.sleep(policy.delay_s)

    # The loop always returns or raises.
    if last_exc is None:  # pragma: no cover
        raise RuntimeError("retry_async exhausted without an exception")
    raise last_exc
