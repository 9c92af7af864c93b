"""prompt_toolkit front end: paints the session and feeds keys to the arbiter."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from prompt_toolkit.application import Application  # type: ignore
from prompt_toolkit.formatted_text import ANSI  # type: ignore
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent  # type: ignore
from prompt_toolkit.keys import Keys  # type: ignore
from prompt_toolkit.layout import HSplit, Layout, Window  # type: ignore
from prompt_toolkit.layout.controls import FormattedTextControl  # type: ignore
from rich.console import Group

from tandem import keys
from tandem.arbiter import ModeArbiter
from tandem.client.display import render_footer, render_main, render_prompt, render_to_ansi
from tandem.keys import KeyPress
from tandem.log_utils import log_event
from tandem.message_buffer import MessageBuffer, Snapshot
from tandem.ui_state import ActionInProgress, ControlMode, Normal

logger = logging.getLogger(__name__)

KEY_BINDINGS: dict[str, KeyPress] = {
    "c-c": keys.INTERRUPT,
    "escape": keys.ESCAPE,
    "enter": keys.ENTER,
    "backspace": keys.BACKSPACE,
    "delete": keys.DELETE,
    "up": keys.UP,
    "down": keys.DOWN,
    "left": keys.LEFT,
    "right": keys.RIGHT,
    "home": keys.HOME,
    "end": keys.END,
    "c-s": keys.SETTINGS,
}


def keypress_for_text(data: str) -> KeyPress | None:
    """Translate raw typed text; control characters have their own bindings."""
    if not data or not data.isprintable():
        return None
    return KeyPress.char(data)


class TerminalUI:
    """Full-screen view of one session.

    Keys go through a queue drained by a single task, so the arbiter sees
    them strictly one at a time.
    """

    def __init__(self, arbiter: ModeArbiter, buffer: MessageBuffer) -> None:
        self._arbiter = arbiter
        self._buffer = buffer
        self._events: Snapshot = ()
        self._queue: asyncio.Queue[KeyPress] = asyncio.Queue()
        self._app = self._build_app()

    @property
    def app(self) -> Application:
        return self._app

    def feed(self, key: KeyPress) -> None:
        if isinstance(self._arbiter.state, ActionInProgress):
            log_event(logger, "ui.input.dropped", level=logging.DEBUG, key=key.key.value)
            return
        self._queue.put_nowait(key)

    def _binding(self, press: KeyPress):
        def _handler(event: KeyPressEvent) -> None:
            self.feed(press)

        return _handler

    def _on_events(self, events: Snapshot) -> None:
        self._events = events
        self._app.invalidate()

    def _render(self) -> ANSI:
        size = self._app.output.get_size()
        width = max(20, size.columns)
        body_height = max(1, size.rows - 4)
        parts = [render_main(self._arbiter, self._events, height=body_height)]
        if self._arbiter.control_mode is ControlMode.LOCAL and isinstance(self._arbiter.state, Normal):
            parts.append(render_prompt(self._arbiter.editor))
        return ANSI(render_to_ansi(Group(*parts), width=width))

    def _render_footer(self) -> ANSI:
        size = self._app.output.get_size()
        return ANSI(render_to_ansi(render_footer(self._arbiter), width=max(20, size.columns)))

    def _build_app(self) -> Application:
        kb = KeyBindings()

        for name, press in KEY_BINDINGS.items():
            kb.add(name, eager=True)(self._binding(press))

        @kb.add(Keys.Any)
        def _(event: KeyPressEvent) -> None:  # type: ignore
            press = keypress_for_text(event.data)
            if press is not None:
                self.feed(press)

        layout = Layout(
            HSplit(
                [
                    Window(FormattedTextControl(self._render), wrap_lines=True),
                    Window(height=1, char="─", style="class:rule"),
                    Window(FormattedTextControl(self._render_footer), height=1),
                ]
            )
        )
        return Application(layout=layout, key_bindings=kb, full_screen=True)

    async def _drain(self) -> None:
        while True:
            key = await self._queue.get()
            try:
                await self._arbiter.handle_key(key)
            except Exception as exc:  # noqa: BLE001
                log_event(logger, "ui.input.error", level=logging.ERROR, key=key.key.value, error=str(exc))
            finally:
                self._queue.task_done()

    def exit(self) -> None:
        if self._app.is_running and not self._app.is_done:
            self._app.exit()

    async def run(self) -> None:
        unsubscribe = self._buffer.subscribe(self._on_events)
        unwatch = self._arbiter.watch(self._app.invalidate)
        drain = asyncio.create_task(self._drain())
        try:
            await self._app.run_async()
        finally:
            unwatch()
            unsubscribe()
            drain.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await drain
            self._arbiter.shutdown()
