"""Chat completion payload building and response parsing."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from npcchat.errors import DataError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from npcchat.config import ChatConfig
    from npcchat.history import ConversationTurn

log = logging.getLogger(__name__)


class CompletionMessage(BaseModel):
    content: str | None = None


class CompletionChoice(BaseModel):
    message: CompletionMessage | None = None


class ChatCompletionResponse(BaseModel):
    """The subset of a chat completion body we rely on."""

    choices: list[CompletionChoice] = []


def build_messages(
    config: ChatConfig, turns: Iterable[ConversationTurn]
) -> list[dict[str, str]]:
    """Return the system message (when enabled) followed by *turns*."""
    messages: list[dict[str, str]] = []
    if config.include_system_message and config.system_message:
        messages.append({"role": "system", "content": config.system_message})
    messages.extend(t.to_message() for t in turns)
    return messages


def build_payload(
    config: ChatConfig, turns: Iterable[ConversationTurn]
) -> dict[str, Any]:
    """Build the outbound JSON object for ``/chat/completions``."""
    return {
        "model": config.model,
        "messages": build_messages(config, turns),
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
    }


def encode_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def parse_completion(body: bytes | str) -> str:
    """Extract ``choices[0].message.content`` from a success body.

    Raises:
        DataError: When the body is not JSON, has no choices, or the first
            choice carries no non-empty content.
    """
    try:
        raw = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DataError("Failed to parse completion response", body=_preview(body)) from e

    try:
        parsed = ChatCompletionResponse.model_validate(raw)
    except ValidationError as e:
        raise DataError("Malformed completion response", body=_preview(body)) from e

    if not parsed.choices:
        raise DataError("No choices in completion response", body=_preview(body))

    message = parsed.choices[0].message
    text = message.content if message is not None else None
    if not text:
        raise DataError("Empty completion in response", body=_preview(body))
    return text


def _preview(body: bytes | str, limit: int = 500) -> str:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return body[:limit]
