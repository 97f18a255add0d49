"""Single-flight chat request pipeline.

One pipeline owns one conversation. A submission appends the user turn,
posts the whole window to the completion endpoint with bounded retry, and
delivers exactly one terminal outcome to the registered sinks.

State machine::

    Idle -> Sending <-> Retrying -> Succeeded | Failed

Succeeded and Failed are resting states: they accept the next submission the
same way Idle does.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import enum
import logging
from typing import TYPE_CHECKING

from npcchat._http import is_success_status
from npcchat.errors import (
    APIError,
    ErrorKind,
    RejectedSubmission,
    error_for_status,
    error_kind,
    user_message,
)
from npcchat.history import ConversationHistory, ConversationTurn
from npcchat.payload import build_payload, encode_payload, parse_completion
from npcchat.retry import retry_async
from npcchat.transports._errors import wrap_transport_error

if TYPE_CHECKING:
    from collections.abc import Iterable

    from npcchat.config import ChatConfig
    from npcchat.sinks import ResultSink
    from npcchat.transports.base import Transport, TransportResponse

log = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 3


class PipelineState(enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_BUSY_STATES = frozenset({PipelineState.SENDING, PipelineState.RETRYING})


@dataclass(frozen=True)
class ChatOutcome:
    """Terminal result of one accepted submission."""

    ok: bool
    text: str | None = None
    #: Set only when ``ok`` is False.
    error_kind: ErrorKind | None = None
    #: User-facing error string; never the raw transport text.
    message: str | None = None
    attempts: int = 0
    error: BaseException | None = None


def _default_transport(config: ChatConfig) -> Transport:
    if config.use_mock:
        from npcchat.transports.mock import MockTransport

        return MockTransport()

    from npcchat.transports.http import HttpxTransport

    return HttpxTransport()


class ChatRequestPipeline:
    """Asynchronous request/response bridge to a chat completion endpoint.

    Not thread-safe and not meant to be shared between concurrent callers;
    the busy check in ``submit()`` is the only synchronization it offers.
    """

    def __init__(
        self,
        config: ChatConfig,
        *,
        transport: Transport | None = None,
        sinks: Iterable[ResultSink] = (),
    ) -> None:
        self._config = config
        self._transport = transport if transport is not None else _default_transport(config)
        self._history = ConversationHistory(config.max_history_length)
        self._sinks: list[ResultSink] = list(sinks)
        self._state = PipelineState.IDLE
        self._last_outcome: ChatOutcome | None = None
        log.debug("Chat pipeline initialized. %s", config.summary())

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def last_outcome(self) -> ChatOutcome | None:
        return self._last_outcome

    def is_processing(self) -> bool:
        """Return True while a request is sending or waiting to retry."""
        return self._state in _BUSY_STATES

    def can_submit(self, message: str) -> bool:
        """Return True when ``submit(message)`` would be accepted."""
        return self._rejection(message) is None

    def history_length(self) -> int:
        return len(self._history)

    def history(self) -> tuple[ConversationTurn, ...]:
        return self._history.turns()

    def clear_history(self) -> None:
        """Drop every turn. An in-flight request keeps its already-built payload."""
        self._history.clear()
        log.debug("Conversation history cleared")

    # ------------------------------------------------------------------
    # Sinks
    # ------------------------------------------------------------------

    def add_sink(self, sink: ResultSink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: ResultSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, message: str) -> asyncio.Task[ChatOutcome]:
        """Accept *message* and start the request without blocking.

        Must be called from a running event loop. The returned task resolves
        to the ``ChatOutcome``; sinks are notified before it resolves.

        Raises:
            RejectedSubmission: The pipeline is busy or the message is too
                short. Nothing is recorded and no sink is called.
        """
        loop = asyncio.get_running_loop()
        body = self._accept(message)
        return loop.create_task(self._run(body))

    async def send(self, message: str) -> ChatOutcome:
        """Awaitable form of ``submit()`` with the same contract."""
        body = self._accept(message)
        return await self._run(body)

    def _rejection(self, message: str) -> RejectedSubmission | None:
        if self.is_processing():
            return RejectedSubmission(
                "Already processing a request. Please wait.",
                reason="busy",
                hint="Check is_processing() or can_submit() before submitting.",
            )
        if not isinstance(message, str) or len(message.strip()) < MIN_MESSAGE_LENGTH:
            return RejectedSubmission(
                f"Message is too short. Minimum {MIN_MESSAGE_LENGTH} characters required.",
                reason="too_short",
            )
        return None

    def _accept(self, message: str) -> bytes:
        rejection = self._rejection(message)
        if rejection is not None:
            log.warning("Submission rejected: %s", rejection)
            raise rejection

        self._history.add("user", message)
        payload = build_payload(self._config, self._history.turns())
        self._state = PipelineState.SENDING
        log.debug("Sending request with %d messages", len(payload["messages"]))
        return encode_payload(payload)

    async def _run(self, body: bytes) -> ChatOutcome:
        config = self._config
        url = config.completions_url
        headers = config.request_headers()
        attempts = 0

        async def attempt() -> TransportResponse:
            nonlocal attempts
            attempts += 1
            self._state = PipelineState.SENDING
            try:
                response = await self._transport.post(
                    url, headers=headers, json_body=body, timeout=config.timeout_s
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                raise wrap_transport_error(e, url=url) from e

            log.debug("Response status: %d (attempt %d)", response.status_code, attempts)
            if not is_success_status(response.status_code):
                raise error_for_status(response.status_code, body=response.text)
            return response

        def on_retry(_retry_index: int, _exc: BaseException) -> None:
            self._state = PipelineState.RETRYING

        try:
            response = await retry_async(
                attempt, policy=config.retry_policy, on_retry=on_retry
            )
            text = parse_completion(response.body)
        except asyncio.CancelledError:
            self._state = PipelineState.IDLE
            raise
        except APIError as exc:
            return self._fail(exc, attempts)

        self._history.add("assistant", text)
        self._state = PipelineState.SUCCEEDED
        outcome = ChatOutcome(ok=True, text=text, attempts=attempts)
        self._last_outcome = outcome
        log.debug("Received response (%d characters)", len(text))
        self._emit_success(text)
        return outcome

    def _fail(self, exc: APIError, attempts: int) -> ChatOutcome:
        kind = error_kind(exc)
        if kind is ErrorKind.UNKNOWN:
            log.error("Chat request failed after %d attempt(s)", attempts, exc_info=exc)
        else:
            log.error(
                "Chat request failed after %d attempt(s): %s%s",
                attempts,
                exc,
                f" - {exc.body}" if exc.body else "",
            )
        self._state = PipelineState.FAILED
        message = user_message(kind)
        outcome = ChatOutcome(
            ok=False,
            error_kind=kind,
            message=message,
            attempts=attempts,
            error=exc,
        )
        self._last_outcome = outcome
        self._emit_error(message)
        return outcome

    def _emit_success(self, text: str) -> None:
        for sink in tuple(self._sinks):
            try:
                sink.on_success(text)
            except Exception:
                log.exception("Result sink %r failed in on_success", sink)

    def _emit_error(self, message: str) -> None:
        for sink in tuple(self._sinks):
            try:
                sink.on_error(message)
            except Exception:
                log.exception("Result sink %r failed in on_error", sink)

    async def aclose(self) -> None:
        """Close the transport. Does not cancel an in-flight request."""
        aclose = getattr(self._transport, "aclose", None)
        if callable(aclose):
            await aclose()
