"""npcchat: single-flight chat completion pipeline for game NPC dialogue.

Public API:
    - ChatRequestPipeline: submit a turn, get one terminal outcome
    - ChatConfig / SpeechConfig: validated configuration
    - NpcDialogue / NpcPersona: persona-framed NPC conversations
    - SpeechSynthesizer: queued text-to-speech
"""

from __future__ import annotations

import logging

from npcchat.config import ChatConfig, SpeechConfig
from npcchat.errors import (
    APIError,
    ClientError,
    ConfigurationError,
    DataError,
    ErrorKind,
    NpcChatError,
    RateLimitError,
    RejectedSubmission,
    ServerError,
    TransportError,
    user_message,
)
from npcchat.history import ConversationHistory, ConversationTurn
from npcchat.npc import NpcDialogue, NpcPersona
from npcchat.pipeline import ChatOutcome, ChatRequestPipeline, PipelineState
from npcchat.retry import RetryPolicy
from npcchat.sinks import CallbackSink, ResultSink
from npcchat.speech import SpeechListener, SpeechSynthesizer

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("npcchat")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("npcchat").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "CallbackSink",
    "ChatConfig",
    "ChatOutcome",
    "ChatRequestPipeline",
    "ClientError",
    "ConfigurationError",
    "ConversationHistory",
    "ConversationTurn",
    "DataError",
    "ErrorKind",
    "NpcChatError",
    "NpcDialogue",
    "NpcPersona",
    "PipelineState",
    "RateLimitError",
    "RejectedSubmission",
    "ResultSink",
    "RetryPolicy",
    "ServerError",
    "SpeechConfig",
    "SpeechListener",
    "SpeechSynthesizer",
    "TransportError",
    "user_message",
]
