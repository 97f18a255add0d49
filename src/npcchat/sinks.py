"""Result sinks: where a pipeline delivers its terminal outcome."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class ResultSink(Protocol):
    """Receives the final text or a user-facing error string.

    For each accepted submission exactly one of the two methods fires, once.
    """

    def on_success(self, text: str) -> None: ...  # noqa: D102
    def on_error(self, message: str) -> None: ...  # noqa: D102


@dataclass(frozen=True)
class CallbackSink:
    """Adapt plain callables to the ``ResultSink`` protocol."""

    success: Callable[[str], None] | None = None
    error: Callable[[str], None] | None = None

    def on_success(self, text: str) -> None:
        if self.success is not None:
            self.success(text)

    def on_error(self, message: str) -> None:
        if self.error is not None:
            self.error(message)
