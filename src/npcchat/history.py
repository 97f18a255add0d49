"""Conversation turns and the bounded history replayed with each request."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Literal, get_args

if TYPE_CHECKING:
    from collections.abc import Iterator

Role = Literal["system", "user", "assistant"]

_ROLES: frozenset[str] = frozenset(get_args(Role))


@dataclasses.dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One message exchanged in a conversation, tagged with its speaker."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        """Validate invariants for type safety."""
        if self.role not in _ROLES:
            raise ValueError(f"role: must be one of {sorted(_ROLES)}, got {self.role!r}")
        if not isinstance(self.content, str):
            raise TypeError("content: must be str")

    def to_message(self) -> dict[str, str]:
        """Return the wire shape ``{"role": ..., "content": ...}``."""
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """Ordered turns with a sliding-window bound.

    Appending past ``max_length`` evicts the oldest non-system turn first.
    """

    def __init__(self, max_length: int) -> None:
        if max_length < 1:
            raise ValueError("max_length must be >= 1")
        self._max_length = max_length
        self._turns: list[ConversationTurn] = []

    @property
    def max_length(self) -> int:
        return self._max_length

    def append(self, turn: ConversationTurn) -> list[ConversationTurn]:
        """Append *turn* and return the turns evicted to stay within bounds."""
        self._turns.append(turn)
        evicted: list[ConversationTurn] = []
        while len(self._turns) > self._max_length:
            evicted.append(self._turns.pop(self._eviction_index()))
        return evicted

    def add(self, role: Role, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content)
        self.append(turn)
        return turn

    def _eviction_index(self) -> int:
        for i, turn in enumerate(self._turns):
            if turn.role != "system":
                return i
        # Only system turns left; fall back to plain FIFO.
        return 0

    def clear(self) -> None:
        self._turns.clear()

    def turns(self) -> tuple[ConversationTurn, ...]:
        """Return an immutable snapshot in chronological order."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(tuple(self._turns))

    def __repr__(self) -> str:
        return f"ConversationHistory(len={len(self._turns)}, max_length={self._max_length})"
