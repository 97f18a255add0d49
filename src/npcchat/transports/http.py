"""httpx-backed transport."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from npcchat.transports._errors import wrap_transport_error
from npcchat.transports.base import TransportResponse

log = logging.getLogger(__name__)


class HttpxTransport:
    """Transport that posts through a lazily created ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Use *client* when given; otherwise one is created on first use."""
        self._client: httpx.AsyncClient | None = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        json_body: bytes,
        timeout: float,
    ) -> TransportResponse:
        """POST *json_body* to *url*, mapping network failures to TransportError."""
        client = self._get_client()
        try:
            response = await client.post(
                url, headers=headers, content=json_body, timeout=timeout
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_transport_error(e, url=url) from e

        log.debug("POST %s -> %d (%d bytes)", url, response.status_code, len(response.content))
        return TransportResponse(status_code=response.status_code, body=response.content)

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        client: Any = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        await client.aclose()
