"""Mock transport for offline use and testing."""

from __future__ import annotations

import json
from typing import Any

from npcchat.transports.base import TransportResponse


class MockTransport:
    """Echo the last user message back as a chat completion.

    Keeps demos and recipes working without network access or an API key.
    """

    def __init__(self) -> None:
        self.calls: int = 0

    async def post(
        self,
        url: str,  # noqa: ARG002
        *,
        headers: dict[str, str],  # noqa: ARG002
        json_body: bytes,
        timeout: float,  # noqa: ARG002
    ) -> TransportResponse:
        """Return a deterministic 200 response."""
        self.calls += 1
        payload: Any = json.loads(json_body)
        messages = payload.get("messages", []) if isinstance(payload, dict) else []
        last_user = next(
            (
                m.get("content", "")
                for m in reversed(messages)
                if isinstance(m, dict) and m.get("role") == "user"
            ),
            "",
        )
        body = {"choices": [{"message": {"content": f"echo: {last_user[:100]}"}}]}
        return TransportResponse(status_code=200, body=json.dumps(body).encode("utf-8"))

    async def aclose(self) -> None:
        """Nothing to release."""
        return None
