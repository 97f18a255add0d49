"""Shared transport-side error helpers.

Transports map library exceptions into ``TransportError`` so the retry loop
sees one stable type for network failures.
"""

from __future__ import annotations

import asyncio

import httpx

from npcchat.errors import APIError, TransportError, _walk_exception_chain


def is_network_error(exc: BaseException) -> bool:
    """Return True when *exc* (or anything it wraps) is a network failure."""
    for e in _walk_exception_chain(exc):
        if isinstance(e, (httpx.TimeoutException, httpx.RequestError)):
            return True
        if isinstance(e, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
            return True
    return False


def wrap_transport_error(
    exc: BaseException,
    *,
    url: str,
    message: str | None = None,
) -> APIError:
    """Map transport library exceptions into classified APIError instances."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already classified; nothing to add.
    if isinstance(exc, APIError):
        return exc

    msg = message or f"POST {url} failed"
    kind = type(exc).__name__
    cause = str(exc)
    detail = f"{kind}: {cause}" if cause else kind
    if is_network_error(exc):
        hint = None
        if isinstance(exc, httpx.TimeoutException):
            hint = "Increase timeout_s if the endpoint is slow to respond."
        return TransportError(f"{msg}: {detail}", hint=hint)
    return APIError(f"{msg}: {detail}", retryable=False)
