"""NPC dialogue: a persona-framed conversation with optional spoken replies.

``NpcDialogue`` is the composition point between a ``ChatRequestPipeline``,
a ``SpeechSynthesizer`` and whatever presentation layer shows the NPC. It
registers itself as the pipeline's result sink and as the synthesizer's
listener, and exposes ``is_thinking``/``is_speaking`` for animation and
input gating.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from npcchat.errors import RejectedSubmission
from npcchat.pipeline import MIN_MESSAGE_LENGTH
from npcchat.speech import SpeechListener

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from npcchat.pipeline import ChatOutcome, ChatRequestPipeline
    from npcchat.speech import SpeechSynthesizer

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NpcPersona:
    """Who the NPC is, prepended to every player question."""

    name: str
    personality: str
    question_label: str = "Player asks"

    def frame(self, message: str) -> str:
        return f"{self.personality}\n\n{self.question_label}: {message}"


class _SpeechTracker(SpeechListener):
    def __init__(self, dialogue: NpcDialogue, inner: SpeechListener | None) -> None:
        self._dialogue = dialogue
        self._inner = inner or SpeechListener()

    def on_started(self, text: str) -> None:
        self._dialogue._speaking = True
        self._inner.on_started(text)

    def on_audio(self, text: str, audio: bytes) -> Any:
        return self._inner.on_audio(text, audio)

    def on_completed(self, text: str) -> None:
        self._dialogue._speech_finished()
        self._inner.on_completed(text)

    def on_error(self, message: str) -> None:
        self._dialogue._speech_finished()
        self._inner.on_error(message)


class NpcDialogue:
    """Talk to one NPC through a chat pipeline, optionally speaking replies."""

    def __init__(
        self,
        pipeline: ChatRequestPipeline,
        persona: NpcPersona,
        *,
        speech: SpeechSynthesizer | None = None,
        speech_listener: SpeechListener | None = None,
        on_reply: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._persona = persona
        self._speech = speech
        self._on_reply = on_reply
        self._on_error = on_error
        self._thinking = False
        self._speaking = False

        pipeline.add_sink(self)
        if speech is not None:
            speech.set_listener(_SpeechTracker(self, speech_listener))

    @property
    def persona(self) -> NpcPersona:
        return self._persona

    @property
    def is_thinking(self) -> bool:
        """True while waiting for the NPC's reply."""
        return self._thinking

    @property
    def is_speaking(self) -> bool:
        """True while the reply is being synthesized or played."""
        return self._speaking

    def can_ask(self, message: str) -> bool:
        stripped = message.strip() if isinstance(message, str) else ""
        return len(stripped) >= MIN_MESSAGE_LENGTH and self._pipeline.can_submit(
            self._persona.frame(stripped)
        )

    def ask(self, message: str) -> asyncio.Task[ChatOutcome]:
        """Send the player's *message* framed by the persona.

        Raises:
            RejectedSubmission: The message is too short or a reply is
                still pending.
        """
        stripped = message.strip() if isinstance(message, str) else ""
        if len(stripped) < MIN_MESSAGE_LENGTH:
            raise RejectedSubmission(
                f"Message is too short. Minimum {MIN_MESSAGE_LENGTH} characters required.",
                reason="too_short",
            )
        task = self._pipeline.submit(self._persona.frame(stripped))
        self._thinking = True
        task.add_done_callback(self._request_done)
        log.debug("%s is thinking", self._persona.name)
        return task

    # ResultSink
    def on_success(self, text: str) -> None:
        self._thinking = False
        if self._on_reply is not None:
            self._on_reply(text)
        if self._speech is not None:
            self._speech.speak(text)

    def on_error(self, message: str) -> None:
        self._thinking = False
        if self._on_error is not None:
            self._on_error(message)

    def _request_done(self, task: asyncio.Task[ChatOutcome]) -> None:
        # A cancelled request never reaches the sinks.
        if task.cancelled():
            self._thinking = False

    def _speech_finished(self) -> None:
        if self._speech is None or self._speech.pending == 0:
            self._speaking = False

    def close(self) -> None:
        """Detach from the pipeline and silence any pending speech."""
        self._pipeline.remove_sink(self)
        if self._speech is not None:
            self._speech.stop()
        self._thinking = False
        self._speaking = False
