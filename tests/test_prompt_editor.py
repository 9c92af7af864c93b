from __future__ import annotations

from tandem.prompt_editor import PromptEditor, PromptHistory


def test_insert_and_cursor_movement() -> None:
    editor = PromptEditor()
    editor.insert("helo")
    editor.move(-1)
    editor.insert("l")

    assert editor.text == "hello"
    assert editor.cursor == 4

    editor.move(-100)
    assert editor.cursor == 0
    editor.move(100)
    assert editor.cursor == 5
    editor.home()
    assert editor.cursor == 0
    editor.end()
    assert editor.cursor == 5


def test_delete_at_bounds_is_noop() -> None:
    editor = PromptEditor()
    editor.delete_backward()
    editor.insert("ab")
    editor.delete_forward()

    assert editor.text == "ab"

    editor.home()
    editor.delete_forward()
    assert editor.text == "b"
    assert editor.cursor == 0

    editor.end()
    editor.delete_backward()
    assert editor.text == ""


def test_history_dedupes_adjacent_and_trims() -> None:
    history = PromptHistory(limit=3)
    history.append("  one ")
    history.append("one")
    history.append("   ")
    history.append("two")
    history.append("three")
    history.append("four")

    assert history.entries == ["two", "three", "four"]


def test_history_navigation_restores_draft() -> None:
    editor = PromptEditor(PromptHistory(entries=["first", "second"]))
    editor.insert("draft")

    editor.history_back()
    assert editor.text == "second"
    assert editor.navigating_history

    editor.history_back()
    editor.history_back()
    assert editor.text == "first"

    editor.history_forward()
    assert editor.text == "second"

    editor.history_forward()
    assert editor.text == "draft"
    assert editor.cursor == len("draft")
    assert not editor.navigating_history


def test_editing_recalled_entry_ends_navigation() -> None:
    editor = PromptEditor(PromptHistory(entries=["recalled"]))
    editor.insert("draft")
    editor.history_back()

    editor.insert("!")

    assert editor.text == "recalled!"
    assert not editor.navigating_history
    editor.history_forward()
    assert editor.text == "recalled!"


def test_history_back_without_entries_is_noop() -> None:
    editor = PromptEditor()
    editor.insert("x")
    editor.history_back()

    assert editor.text == "x"
    assert not editor.navigating_history


def test_commit_records_history_and_clears() -> None:
    editor = PromptEditor()
    editor.insert("run tests")
    editor.commit("run tests")

    assert editor.text == ""
    assert editor.cursor == 0
    assert editor.history.entries == ["run tests"]
