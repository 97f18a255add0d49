from __future__ import annotations

import dataclasses

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from npcchat.history import ConversationHistory, ConversationTurn

pytestmark = pytest.mark.unit


def test_turn_is_frozen_and_serializes_to_wire_shape() -> None:
    turn = ConversationTurn(role="user", content="hi")

    assert turn.to_message() == {"role": "user", "content": "hi"}
    with pytest.raises(dataclasses.FrozenInstanceError):
        turn.content = "changed"  # type: ignore[misc]


def test_turn_rejects_unknown_role() -> None:
    with pytest.raises(ValueError, match="role"):
        ConversationTurn(role="tool", content="x")  # type: ignore[arg-type]


def test_turn_rejects_non_string_content() -> None:
    with pytest.raises(TypeError):
        ConversationTurn(role="user", content=None)  # type: ignore[arg-type]


def test_history_requires_positive_bound() -> None:
    with pytest.raises(ValueError):
        ConversationHistory(0)


def test_append_within_bound_keeps_order() -> None:
    history = ConversationHistory(3)
    history.add("user", "a")
    history.add("assistant", "b")

    assert [t.content for t in history] == ["a", "b"]
    assert len(history) == 2


def test_append_past_bound_evicts_oldest_and_reports_it() -> None:
    history = ConversationHistory(2)
    history.add("user", "a")
    history.add("assistant", "b")

    evicted = history.append(ConversationTurn("user", "c"))

    assert [t.content for t in evicted] == ["a"]
    assert [t.content for t in history] == ["b", "c"]


def test_system_turns_survive_eviction() -> None:
    history = ConversationHistory(3)
    history.add("system", "rules")
    history.add("user", "u1")
    history.add("assistant", "a1")

    history.add("user", "u2")

    assert [t.content for t in history] == ["rules", "a1", "u2"]


def test_all_system_history_falls_back_to_fifo() -> None:
    history = ConversationHistory(2)
    history.add("system", "s1")
    history.add("system", "s2")

    history.add("system", "s3")

    assert [t.content for t in history] == ["s2", "s3"]


def test_clear_and_snapshot() -> None:
    history = ConversationHistory(5)
    history.add("user", "a")
    snapshot = history.turns()

    history.clear()

    assert len(history) == 0
    assert [t.content for t in snapshot] == ["a"]


@given(
    bound=st.integers(min_value=1, max_value=8),
    roles=st.lists(st.sampled_from(["user", "assistant"]), max_size=40),
)
@settings(max_examples=50, deadline=None, derandomize=True)
def test_bound_holds_and_eviction_is_fifo(bound: int, roles: list[str]) -> None:
    history = ConversationHistory(bound)
    appended: list[ConversationTurn] = []

    for i, role in enumerate(roles):
        turn = ConversationTurn(role=role, content=str(i))  # type: ignore[arg-type]
        appended.append(turn)
        history.append(turn)
        assert len(history) <= bound

    # Without system turns the window is exactly the most recent suffix.
    assert list(history.turns()) == appended[-bound:]
