"""Transport protocol: minimal interface for posting JSON over HTTP."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP outcome: status code and body bytes."""

    status_code: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@runtime_checkable
class Transport(Protocol):
    """Minimal transport protocol: post JSON bytes, get status and body back.

    Network-level failures are raised as ``TransportError``; any HTTP status,
    including 4xx/5xx, is returned as a ``TransportResponse``.
    """

    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        json_body: bytes,
        timeout: float,
    ) -> TransportResponse:
        """Send a POST request and return the raw response."""
        ...

    async def aclose(self) -> None:
        """Release any pooled connections."""
        ...
