from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from prompt_toolkit.application import create_app_session
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from tandem import keys
from tandem.arbiter import ModeArbiter
from tandem.client.terminal_ui import KEY_BINDINGS, TerminalUI, keypress_for_text
from tandem.keys import Key, KeyPress
from tandem.message_buffer import MessageBuffer
from tandem.ui_state import ActionInProgress


def test_printable_text_becomes_char_press() -> None:
    assert keypress_for_text("a") == KeyPress.char("a")
    assert keypress_for_text("\x1b") is None
    assert keypress_for_text("") is None


@pytest.mark.asyncio
async def test_feed_queues_keys_for_the_arbiter() -> None:
    with create_pipe_input() as pipe, create_app_session(input=pipe, output=DummyOutput()):
        arbiter = ModeArbiter(MessageBuffer(), submit_prompt=AsyncMock())
        ui = TerminalUI(arbiter, MessageBuffer())

        ui.feed(KeyPress.char("h"))
        ui.feed(KeyPress(Key.CHAR, "i"))

        assert ui._queue.qsize() == 2


@pytest.mark.asyncio
async def test_feed_drops_keys_during_actions() -> None:
    with create_pipe_input() as pipe, create_app_session(input=pipe, output=DummyOutput()):
        arbiter = ModeArbiter(MessageBuffer())
        arbiter._state = ActionInProgress("Exiting...")
        ui = TerminalUI(arbiter, MessageBuffer())

        ui.feed(keys.INTERRUPT)

        assert ui._queue.empty()


def test_ctrl_s_is_the_settings_gesture() -> None:
    assert KEY_BINDINGS["c-s"] == keys.SETTINGS
