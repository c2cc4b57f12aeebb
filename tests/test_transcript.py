"""
Tests for the append-only conversation log.
"""
import pytest

from chat_pipeline.transcript import (
    ConversationLog,
    ErrorMarker,
    SuggestionChoice,
    Utterance,
    entry_to_dict,
)


def test_append_assigns_increasing_indices():
    log = ConversationLog()

    first = log.append(Utterance("hi"))
    second = log.append(ErrorMarker(7))
    third = log.append(SuggestionChoice("hello"))

    assert [first.index, second.index, third.index] == [0, 1, 2]
    assert [e.index for e in log.all()] == [0, 1, 2]


def test_snapshot_not_affected_by_later_appends():
    log = ConversationLog()
    log.append(Utterance("hi"))

    snapshot = log.all()
    log.append(Utterance("how are you"))

    assert snapshot == (Utterance("hi"),)
    assert len(log) == 2


def test_iteration_is_restartable():
    log = ConversationLog()
    log.append(Utterance("a"))
    log.append(Utterance("b"))

    assert [e.text for e in log] == ["a", "b"]
    assert [e.text for e in log] == ["a", "b"]


def test_entries_compare_by_kind_and_payload():
    assert Utterance("hi", index=3) == Utterance("hi")
    assert Utterance("hi") != SuggestionChoice("hi")


def test_entries_are_immutable():
    entry = ConversationLog().append(Utterance("hi"))
    with pytest.raises(Exception):
        entry.text = "changed"


def test_get_rejects_unknown_index():
    log = ConversationLog()
    log.append(Utterance("hi"))

    assert log.get(0) == Utterance("hi")
    with pytest.raises(IndexError):
        log.get(1)
    with pytest.raises(IndexError):
        log.get(-1)


def test_display_text_and_dict_view():
    log = ConversationLog()
    marker = log.append(ErrorMarker(2))

    assert marker.display_text == "* ERROR: 2"
    assert entry_to_dict(marker) == {"index": 0, "kind": "error", "display_text": "* ERROR: 2", "code": 2}
