"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, and shared config
fixtures. All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from npcchat.config import ChatConfig, SpeechConfig
from tests.helpers import make_config

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Clears OPENROUTER_*, OPENAI_* and ELEVENLABS_* env vars to prevent test
    pollution. Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("OPENROUTER_", "OPENAI_", "ELEVENLABS_")):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Shared Configuration (opt-in)
# =============================================================================


@pytest.fixture
def chat_config() -> ChatConfig:
    """Return a valid ChatConfig with zero retry delay."""
    return make_config()


@pytest.fixture
def speech_config() -> SpeechConfig:
    """Return an enabled SpeechConfig with a test key."""
    return SpeechConfig(api_key="xi-test-key", max_text_length=40)
