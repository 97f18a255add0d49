"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off transport classes as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
from typing import Any

from npcchat.config import ChatConfig
from npcchat.transports.base import TransportResponse

TEST_MODEL = "deepseek/deepseek-chat-v3-0324:free"
TEST_API_KEY = "sk-or-test-0123456789"


def make_config(**overrides: Any) -> ChatConfig:
    """Build a ChatConfig with a test key and no retry delay."""
    values: dict[str, Any] = {
        "model": TEST_MODEL,
        "api_key": TEST_API_KEY,
        "retry_delay_s": 0.0,
    }
    values.update(overrides)
    return ChatConfig(**values)


def completion_body(text: str | None) -> bytes:
    """Encode a chat completion success body carrying *text*."""
    return json.dumps({"choices": [{"message": {"content": text}}]}).encode("utf-8")


def ok(text: str = "hello") -> TransportResponse:
    return TransportResponse(status_code=200, body=completion_body(text))


def status(code: int, body: str = "") -> TransportResponse:
    return TransportResponse(status_code=code, body=body.encode("utf-8"))


@dataclass
class ScriptedTransport:
    """Transport that returns a scripted sequence of responses/exceptions.

    When the script runs out, the last item repeats.
    """

    script: list[TransportResponse | BaseException] = field(default_factory=list)
    calls: list[dict[str, Any]] = field(default_factory=list)
    closed: bool = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        json_body: bytes,
        timeout: float,
    ) -> TransportResponse:
        self.calls.append(
            {"url": url, "headers": headers, "json_body": json_body, "timeout": timeout}
        )
        if not self.script:
            return ok()
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def payload(self, index: int = -1) -> Any:
        return json.loads(self.calls[index]["json_body"])

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class GateTransport(ScriptedTransport):
    """ScriptedTransport that blocks every call until ``release()``."""

    gate: asyncio.Event = field(default_factory=asyncio.Event)
    entered: asyncio.Event = field(default_factory=asyncio.Event)

    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        json_body: bytes,
        timeout: float,
    ) -> TransportResponse:
        self.entered.set()
        await self.gate.wait()
        return await super().post(
            url, headers=headers, json_body=json_body, timeout=timeout
        )

    def release(self) -> None:
        self.gate.set()


@dataclass
class RecordingSink:
    """ResultSink that records every notification."""

    successes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def on_success(self, text: str) -> None:
        self.successes.append(text)

    def on_error(self, message: str) -> None:
        self.errors.append(message)
