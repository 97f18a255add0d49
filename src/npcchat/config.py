"""Configuration: frozen ChatConfig and SpeechConfig, validated at construction."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Literal

from dotenv import load_dotenv

from npcchat.errors import ConfigurationError
from npcchat.retry import RetryPolicy

load_dotenv()

ProviderName = Literal["openrouter", "openai"]

MAX_TOKENS_LIMIT = 4000

# Provider-specific API key environment variable names
_API_KEY_ENV_VARS: dict[ProviderName, str] = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
}

_DEFAULT_BASE_URLS: dict[ProviderName, str] = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": "https://api.openai.com/v1",
}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def mask_secret(secret: str | None) -> str:
    """Show only the first 7 and last 4 characters of a secret."""
    if not secret or len(secret) < 11:
        return "Invalid"
    return f"{secret[:7]}...{secret[-4:]}"


@dataclass(frozen=True)
class ChatConfig:
    """Immutable configuration for a chat pipeline.

    API keys are auto-resolved from standard environment variables.

    Example:
        config = ChatConfig(model="deepseek/deepseek-chat-v3-0324:free")
        # API key is automatically resolved from OPENROUTER_API_KEY
    """

    provider: ProviderName = "openrouter"
    model: str = "deepseek/deepseek-chat-v3-0324:free"
    #: Auto-resolved from ``OPENROUTER_API_KEY`` or ``OPENAI_API_KEY`` when *None*.
    api_key: str | None = None
    #: Defaults to the provider's public endpoint when *None*.
    base_url: str | None = None
    #: OpenRouter attribution headers (``HTTP-Referer`` / ``X-Title``).
    site_url: str = "https://your-site.com"
    site_name: str = "AI Training Game"
    max_tokens: int = 400
    temperature: float = 0.7
    include_system_message: bool = True
    system_message: str = "You are a helpful assistant."
    max_history_length: int = 10
    timeout_s: float = 30.0
    max_retries: int = 3
    retry_delay_s: float = 1.0
    enable_retry: bool = True
    use_mock: bool = False

    def __post_init__(self) -> None:
        """Auto-resolve API key and base URL, then validate bounds."""
        if self.provider not in _API_KEY_ENV_VARS:
            raise ConfigurationError(
                f"Unknown provider: {self.provider!r}",
                hint="Supported providers: 'openrouter', 'openai'",
            )
        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Pass model='deepseek/deepseek-chat-v3-0324:free' or similar.",
            )

        if not _is_int(self.max_tokens) or not (
            0 < self.max_tokens <= MAX_TOKENS_LIMIT
        ):
            raise ConfigurationError(
                f"max_tokens must be between 1 and {MAX_TOKENS_LIMIT}, got {self.max_tokens}",
            )
        if not _is_real(self.temperature) or not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got {self.temperature}",
            )
        if not _is_int(self.max_history_length) or self.max_history_length < 1:
            raise ConfigurationError(
                f"max_history_length must be ≥ 1, got {self.max_history_length}",
                hint="This bounds how many turns are replayed with each request.",
            )
        if not _is_real(self.timeout_s) or self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
            )
        if not _is_int(self.max_retries) or self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must be ≥ 0, got {self.max_retries}",
                hint="Use 0 to disable retries.",
            )
        if not _is_real(self.retry_delay_s) or self.retry_delay_s < 0:
            raise ConfigurationError(
                f"retry_delay_s must be ≥ 0, got {self.retry_delay_s}",
            )

        if self.base_url is None:
            object.__setattr__(self, "base_url", _DEFAULT_BASE_URLS[self.provider])
        elif not self.base_url.strip():
            raise ConfigurationError(
                "base_url must not be empty",
                hint="Omit base_url to use the provider default.",
            )

        # Auto-resolve API key from environment if not provided
        if self.api_key is None and not self.use_mock:
            env_var = _API_KEY_ENV_VARS[self.provider]
            object.__setattr__(self, "api_key", os.environ.get(env_var))

        # Validate: real API calls need a key
        if not self.use_mock and not self.api_key:
            env_var = _API_KEY_ENV_VARS[self.provider]
            raise ConfigurationError(
                f"API key required for {self.provider}",
                hint=f"Set {env_var} environment variable or pass api_key=...",
            )

    @property
    def retry_policy(self) -> RetryPolicy:
        """Retry policy derived from the flat retry fields."""
        return RetryPolicy(
            max_retries=self.max_retries,
            delay_s=self.retry_delay_s,
            enabled=self.enable_retry,
        )

    @property
    def completions_url(self) -> str:
        """Absolute URL of the chat completions endpoint."""
        return f"{str(self.base_url).rstrip('/')}/chat/completions"

    def request_headers(self) -> dict[str, str]:
        """Headers sent with every completion request."""
        headers = {
            "Authorization": f"Bearer {self.api_key or ''}",
            "Content-Type": "application/json",
        }
        if self.provider == "openrouter":
            headers["HTTP-Referer"] = self.site_url
            headers["X-Title"] = self.site_name
        return headers

    def mask_api_key(self) -> str:
        """Return the API key with its middle elided, for display."""
        return mask_secret(self.api_key)

    def summary(self) -> str:
        """Return a one-line summary suitable for debug logs."""
        return (
            f"Provider: {self.provider}, Model: {self.model}, "
            f"Max Tokens: {self.max_tokens}, Temperature: {self.temperature}, "
            f"Max History Length: {self.max_history_length}"
        )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ChatConfig(provider={self.provider!r}, model={self.model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, use_mock={self.use_mock})"
        )

    __repr__ = __str__


_SPEECH_API_KEY_ENV_VAR = "ELEVENLABS_API_KEY"


@dataclass(frozen=True)
class SpeechConfig:
    """Immutable configuration for text-to-speech.

    The API key is auto-resolved from ``ELEVENLABS_API_KEY``. A disabled
    config needs no key.
    """

    api_key: str | None = None
    voice_id: str = "pNInz6obpgDQGcFmaJgB"
    model_id: str = "eleven_flash_v2_5"
    base_url: str = "https://api.elevenlabs.io/v1"
    max_text_length: int = 500
    timeout_s: float = 30.0
    enabled: bool = True

    def __post_init__(self) -> None:
        """Auto-resolve API key and validate bounds."""
        if not _is_int(self.max_text_length) or self.max_text_length < 1:
            raise ConfigurationError(
                f"max_text_length must be ≥ 1, got {self.max_text_length}",
            )
        if not _is_real(self.timeout_s) or self.timeout_s <= 0:
            raise ConfigurationError(f"timeout_s must be > 0, got {self.timeout_s}")
        if not self.voice_id:
            raise ConfigurationError("voice_id must not be empty")

        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_SPEECH_API_KEY_ENV_VAR))

        if self.enabled and not self.api_key:
            raise ConfigurationError(
                "API key required for speech synthesis",
                hint=f"Set {_SPEECH_API_KEY_ENV_VAR} or pass enabled=False.",
            )

    def synthesis_url(self, voice_id: str | None = None) -> str:
        return f"{self.base_url.rstrip('/')}/text-to-speech/{voice_id or self.voice_id}"

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"SpeechConfig(voice_id={self.voice_id!r}, model_id={self.model_id!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, enabled={self.enabled})"
        )

    __repr__ = __str__
