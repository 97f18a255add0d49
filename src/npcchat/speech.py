"""Text-to-speech: synthesize NPC replies into audio, one at a time.

Playback is not done here. Audio bytes are handed to a ``SpeechListener``;
if its ``on_audio`` returns an awaitable, the queue waits for it before
moving on, so a player can hold the queue for the clip's duration.
"""

from __future__ import annotations

import asyncio
from collections import deque
import inspect
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from npcchat._http import is_success_status
from npcchat.errors import (
    APIError,
    DataError,
    ErrorKind,
    error_for_status,
    error_kind,
    user_message,
)
from npcchat.transports._errors import wrap_transport_error

if TYPE_CHECKING:
    from npcchat.config import SpeechConfig
    from npcchat.transports.base import Transport

log = logging.getLogger(__name__)

FALLBACK_TEXT = "Hello"

_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("\r", " "),
    ("\n", " "),
    ("\t", " "),
    ("\b", " "),
    ("\f", " "),
    ('"', "'"),
    ("\\", "/"),
    ("&", "and"),
    ("<", " "),
    (">", " "),
)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_text_for_speech(text: str | None, max_length: int) -> str:
    """Normalize *text* into something the synthesis endpoint accepts.

    Control characters and markup-ish symbols become spaces, whitespace runs
    collapse, and the result is trimmed and cut to *max_length*. Text that
    cleans down to nothing becomes ``FALLBACK_TEXT``; empty input stays empty.
    """
    if not text:
        return ""

    cleaned = text
    for old, new in _REPLACEMENTS:
        cleaned = cleaned.replace(old, new)
    cleaned = _CONTROL_CHARS_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()

    if not cleaned:
        log.warning("Text was empty after cleaning, using fallback")
        cleaned = FALLBACK_TEXT

    if len(cleaned) > max_length:
        log.warning("Text truncated to %d characters", max_length)
        cleaned = cleaned[:max_length]
    return cleaned


class SpeechListener:
    """Receives speech lifecycle notifications. Override what you need."""

    def on_started(self, text: str) -> None:
        pass

    def on_audio(self, text: str, audio: bytes) -> Any:
        """Play *audio*; may return an awaitable that resolves when playback ends."""
        return None

    def on_completed(self, text: str) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class SpeechSynthesizer:
    """Queue-backed client for an ElevenLabs-style text-to-speech endpoint."""

    def __init__(
        self,
        config: SpeechConfig,
        *,
        transport: Transport | None = None,
        listener: SpeechListener | None = None,
    ) -> None:
        if transport is None:
            from npcchat.transports.http import HttpxTransport

            transport = HttpxTransport()
        self._config = config
        self._transport = transport
        self._listener = listener or SpeechListener()
        self._voice_id = config.voice_id
        self._queue: deque[str] = deque()
        self._worker: asyncio.Task[None] | None = None
        self._speaking = False

    @property
    def voice_id(self) -> str:
        return self._voice_id

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def pending(self) -> int:
        return len(self._queue)

    def set_listener(self, listener: SpeechListener | None) -> None:
        self._listener = listener or SpeechListener()

    def set_voice_id(self, voice_id: str) -> None:
        if not voice_id:
            raise ValueError("voice_id must not be empty")
        self._voice_id = voice_id
        log.debug("Voice ID changed to: %s", voice_id)

    async def synthesize(self, text: str) -> bytes:
        """Convert *text* to audio bytes (MP3).

        Raises:
            APIError: Classified failure (transport, status, or empty audio).
        """
        config = self._config
        url = config.synthesis_url(self._voice_id)
        clean = clean_text_for_speech(text, config.max_text_length)
        body = json.dumps(
            {"text": clean, "model_id": config.model_id}, ensure_ascii=False
        ).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
            "xi-api-key": config.api_key or "",
        }

        log.debug("Requesting speech for %d characters from %s", len(clean), url)
        try:
            response = await self._transport.post(
                url, headers=headers, json_body=body, timeout=config.timeout_s
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_transport_error(e, url=url, message="speech request failed") from e

        if not is_success_status(response.status_code):
            raise error_for_status(
                response.status_code, body=response.text, service="speech"
            )
        if not response.body:
            raise DataError("speech response carried no audio")
        log.debug("Received %d bytes of audio", len(response.body))
        return response.body

    def speak(self, text: str) -> None:
        """Queue *text* for synthesis and start the worker if idle.

        Must be called from a running event loop. No-op when speech is
        disabled or *text* is empty.
        """
        if not self._config.enabled or not text:
            return

        limit = self._config.max_text_length
        if len(text) > limit:
            text = text[:limit] + "..."
        self._queue.append(text)

        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain_queue())

    async def wait_idle(self) -> None:
        """Wait until every queued text has been processed."""
        worker = self._worker
        if worker is not None and not worker.done():
            await asyncio.wait({worker})

    def stop(self) -> None:
        """Drop queued texts and cancel the one in progress."""
        self._queue.clear()
        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
        self._speaking = False

    async def _drain_queue(self) -> None:
        while self._queue:
            text = self._queue.popleft()
            self._speaking = True
            try:
                await self._speak_one(text)
            finally:
                self._speaking = False

    async def _speak_one(self, text: str) -> None:
        listener = self._listener
        try:
            listener.on_started(text)
            audio = await self.synthesize(text)
            played = listener.on_audio(text, audio)
            if inspect.isawaitable(played):
                await played
        except APIError as exc:
            log.error("Speech failed: %s", exc)
            self._notify_error(listener, user_message(error_kind(exc)))
            return
        except Exception:
            log.exception("Speech listener %r failed while speaking", listener)
            self._notify_error(listener, user_message(ErrorKind.UNKNOWN))
            return

        try:
            listener.on_completed(text)
        except Exception:
            log.exception("Speech listener %r failed in on_completed", listener)

    @staticmethod
    def _notify_error(listener: SpeechListener, message: str) -> None:
        try:
            listener.on_error(message)
        except Exception:
            log.exception("Speech listener %r failed in on_error", listener)

    async def aclose(self) -> None:
        """Stop speaking and close the transport."""
        self.stop()
        aclose = getattr(self._transport, "aclose", None)
        if callable(aclose):
            await aclose()
