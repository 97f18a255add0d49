"""Exception hierarchy for npcchat."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from npcchat._http import RATE_LIMIT_STATUS, is_retryable_status

if TYPE_CHECKING:
    from collections.abc import Iterator


class NpcChatError(Exception):
    """Base exception for all npcchat errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(NpcChatError):
    """Configuration validation or resolution failed."""


class RejectedSubmission(NpcChatError):
    """A submission was refused before any request was made.

    Raised synchronously by ``submit()``; never retried and never routed to
    result sinks.
    """

    def __init__(self, message: str, *, reason: str, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.reason = reason


class APIError(NpcChatError):
    """Request to a remote endpoint failed.

    Subclasses carry the classification; ``retryable`` lets the retry loop
    decide without inspecting message text.
    """

    retryable_default: bool | None = None

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        body: str | None = None,
        attempt: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = self.retryable_default if retryable is None else retryable
        self.status_code = status_code
        self.body = body
        self.attempt = attempt


class TransportError(APIError):
    """Network-level failure (timeout, DNS, connection reset)."""

    retryable_default = True


class ServerError(APIError):
    """Server-side failure (HTTP 5xx)."""

    retryable_default = True


class RateLimitError(ServerError):
    """Rate limit exceeded (HTTP 429)."""


class ClientError(APIError):
    """Request rejected by the server (HTTP 4xx other than 429)."""

    retryable_default = False


class DataError(APIError):
    """Successful status but the body carried no usable completion."""

    retryable_default = False


class ErrorKind(enum.Enum):
    """Stable classification of terminal failures."""

    TRANSPORT = "transport"
    SERVER = "server"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    CLIENT = "client"
    DATA = "data"
    UNKNOWN = "unknown"


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.TRANSPORT: "Network connection problem, please check your internet.",
    ErrorKind.SERVER: "The server is busy, please try again later.",
    ErrorKind.RATE_LIMIT: "Too many requests, please wait a moment.",
    ErrorKind.AUTH: "Authentication failed, please check the configuration.",
    ErrorKind.CLIENT: "Something went wrong, please try again.",
    ErrorKind.DATA: "Something went wrong, please try again.",
    ErrorKind.UNKNOWN: "Something went wrong, please try again.",
}


def user_message(kind: ErrorKind) -> str:
    """Return the short, human-readable message shown for *kind*."""
    return _USER_MESSAGES[kind]


def error_kind(exc: BaseException) -> ErrorKind:
    """Classify *exc* into an ``ErrorKind``."""
    if isinstance(exc, TransportError):
        return ErrorKind.TRANSPORT
    if isinstance(exc, RateLimitError):
        return ErrorKind.RATE_LIMIT
    if isinstance(exc, ServerError):
        return ErrorKind.SERVER
    if isinstance(exc, ClientError):
        if exc.status_code in {401, 403}:
            return ErrorKind.AUTH
        return ErrorKind.CLIENT
    if isinstance(exc, DataError):
        return ErrorKind.DATA
    return ErrorKind.UNKNOWN


def error_for_status(
    status_code: int, *, body: str | None = None, service: str = "chat"
) -> APIError:
    """Build the classified APIError for a non-2xx HTTP status."""
    err_cls: type[APIError]
    hint: str | None = None
    if status_code == RATE_LIMIT_STATUS:
        err_cls = RateLimitError
    elif is_retryable_status(status_code):
        err_cls = ServerError
    elif 400 <= status_code <= 499:
        err_cls = ClientError
        if status_code in {401, 403}:
            hint = "Check the API key and its permissions."
    else:
        # 1xx/3xx leaking out of the transport are not something a resend fixes.
        err_cls = APIError
    return err_cls(
        f"{service} request failed (status={status_code})",
        hint=hint,
        retryable=False if err_cls is APIError else None,
        status_code=status_code,
        body=body,
    )


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
