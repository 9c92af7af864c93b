"""Mode arbiter: input control, settings overlay and exit confirmation.

One key press is handled to completion before the next one is looked at.
Long-running collaborator calls (settings commit, handoff, exit) run inside
`ActionInProgress`, and every key that arrives meanwhile is dropped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

from tandem.approvals import ApprovalDecision, ApprovalRelay
from tandem.config import DEFAULT_CONFIRM_WINDOW
from tandem.config_hints import OptionHints
from tandem.events import SessionEvent
from tandem.keys import Key, KeyPress
from tandem.log_utils import log_context, log_event
from tandem.message_buffer import MessageBuffer
from tandem.prompt_editor import PromptEditor
from tandem.settings import DraftSettings, PermissionMode, RunSettings, normalize, open_picker
from tandem.slash import handle_slash_command
from tandem.ui_state import (
    SETTINGS_ROWS,
    ActionInProgress,
    Confirmation,
    ControlMode,
    Normal,
    SettingsOverlay,
    SettingsPicker,
    SettingsRow,
    TextEdit,
    UIState,
)

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None] | None]
SettingsCommitter = Callable[[RunSettings], Awaitable[None] | None]
PromptSubmitter = Callable[[str], Awaitable[None] | None]

SETTINGS_KEY = "s"


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class ModeArbiter:
    def __init__(
        self,
        buffer: MessageBuffer,
        *,
        control_mode: ControlMode = ControlMode.LOCAL,
        settings: RunSettings | None = None,
        hints: OptionHints | None = None,
        editor: PromptEditor | None = None,
        approvals: ApprovalRelay | None = None,
        commit_settings: SettingsCommitter | None = None,
        submit_prompt: PromptSubmitter | None = None,
        switch_to_local: Callback | None = None,
        switch_to_remote: Callback | None = None,
        on_exit: Callback | None = None,
        confirm_window: float = DEFAULT_CONFIRM_WINDOW,
        initial_show_settings: bool = False,
    ) -> None:
        self._buffer = buffer
        self._control = control_mode
        self._committed = settings or RunSettings()
        self._hints = hints or OptionHints()
        self._editor = editor or PromptEditor()
        self._approvals = approvals
        self._commit_settings = commit_settings
        self._submit_prompt = submit_prompt
        self._switch_to_local = switch_to_local
        self._switch_to_remote = switch_to_remote
        self._on_exit = on_exit
        self._confirm_window = confirm_window
        self._confirm_timer: asyncio.TimerHandle | None = None
        self._watchers: dict[int, Callable[[], None]] = {}
        self._next_watcher = 0
        self._state: UIState = Normal()
        if initial_show_settings:
            self._state = self._fresh_overlay()

    # Read-only views for renderers.

    @property
    def state(self) -> UIState:
        return self._state

    @property
    def control_mode(self) -> ControlMode:
        return self._control

    @property
    def settings(self) -> RunSettings:
        return self._committed

    @property
    def hints(self) -> OptionHints:
        return self._hints

    @property
    def editor(self) -> PromptEditor:
        return self._editor

    @property
    def can_switch_to_local(self) -> bool:
        return self._switch_to_local is not None

    @property
    def confirmation_armed(self) -> bool:
        return isinstance(self._state, Confirmation)

    def watch(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a repaint hook called after every state change."""
        handle = self._next_watcher
        self._next_watcher += 1
        self._watchers[handle] = callback

        def _unwatch() -> None:
            self._watchers.pop(handle, None)

        return _unwatch

    def notify_system(self, message: str) -> None:
        self._buffer.append(SessionEvent.system(message))

    def resolve_approval(self, decision: ApprovalDecision) -> bool:
        """Answer the oldest pending approval from this terminal."""
        pending = self._approvals.pending if self._approvals is not None else []
        if not pending:
            self.notify_system("No approval is pending.")
            return False
        return self._approvals.resolve(pending[0].request_id, decision, source=self._control.value)

    # State plumbing.

    def _set_state(self, state: UIState) -> None:
        if not isinstance(state, Confirmation):
            self._cancel_confirm_timer()
        previous = type(self._state).__name__
        self._state = state
        if previous != type(state).__name__:
            log_event(logger, "arbiter.state", previous=previous, current=type(state).__name__, control=self._control.value)
        self._changed()

    def _changed(self) -> None:
        for handle, callback in list(self._watchers.items()):
            try:
                callback()
            except Exception as exc:  # noqa: BLE001
                log_event(logger, "arbiter.watcher.error", level=logging.WARNING, handle=handle, error=str(exc))

    def _cancel_confirm_timer(self) -> None:
        if self._confirm_timer is not None:
            self._confirm_timer.cancel()
            self._confirm_timer = None

    def _arm_confirmation(self) -> None:
        self._cancel_confirm_timer()
        loop = asyncio.get_running_loop()
        self._confirm_timer = loop.call_later(self._confirm_window, self._on_confirm_timeout)
        self._set_state(Confirmation())

    def _on_confirm_timeout(self) -> None:
        self._confirm_timer = None
        if isinstance(self._state, Confirmation):
            log_event(logger, "arbiter.confirmation.expired")
            self._set_state(Normal())

    def _disarm(self) -> None:
        if isinstance(self._state, Confirmation):
            self._set_state(Normal())

    def _fresh_overlay(self) -> SettingsOverlay:
        return SettingsOverlay(draft=DraftSettings.from_settings(self._committed))

    # Input.

    async def handle_key(self, key: KeyPress) -> None:
        state = self._state
        if isinstance(state, ActionInProgress):
            log_event(logger, "arbiter.input.ignored", level=logging.DEBUG, key=key.key.value, action=state.label)
            return
        if key.key is Key.INTERRUPT:
            await self._on_interrupt()
            return
        if isinstance(state, Confirmation):
            self._disarm()
            state = self._state
        if isinstance(state, SettingsOverlay):
            await self._overlay_key(state, key)
        elif isinstance(state, SettingsPicker):
            self._picker_key(state, key)
        else:
            await self._normal_key(key)
        self._changed()

    async def _on_interrupt(self) -> None:
        if isinstance(self._state, (SettingsOverlay, SettingsPicker)):
            log_event(logger, "arbiter.settings.discarded", reason="interrupt")
            self._set_state(Normal())
        if self._control is ControlMode.REMOTE and self._switch_to_local is not None:
            self._disarm()
            await self._handoff(ControlMode.LOCAL)
            return
        if isinstance(self._state, Confirmation):
            await self.exit()
            return
        self._arm_confirmation()

    async def _normal_key(self, key: KeyPress) -> None:
        if key.key is Key.SETTINGS:
            self.open_settings()
            return
        if self._control is ControlMode.REMOTE:
            if key.is_char(SETTINGS_KEY):
                self.open_settings()
            return
        editor = self._editor
        if key.key is Key.CHAR:
            editor.insert(key.text)
        elif key.key is Key.BACKSPACE:
            editor.delete_backward()
        elif key.key is Key.DELETE:
            editor.delete_forward()
        elif key.key is Key.LEFT:
            editor.move(-1)
        elif key.key is Key.RIGHT:
            editor.move(1)
        elif key.key is Key.HOME:
            editor.home()
        elif key.key is Key.END:
            editor.end()
        elif key.key is Key.UP:
            editor.history_back()
        elif key.key is Key.DOWN:
            editor.history_forward()
        elif key.key is Key.ENTER:
            await self._confirm_line()

    async def _confirm_line(self) -> None:
        line = self._editor.text.strip()
        if not line:
            return
        if await handle_slash_command(line, self):
            # Commands own any state change; the line itself is consumed.
            self._editor.clear()
            return
        if self._submit_prompt is None:
            self.notify_system("No agent is attached; prompt not sent.")
            return
        try:
            await _maybe_await(self._submit_prompt(line))
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "arbiter.prompt.error", level=logging.WARNING, error=str(exc))
            self.notify_system(f"Failed to send prompt: {exc}")
            return
        log_event(logger, "arbiter.prompt.submitted", length=len(line))
        self._editor.commit(line)

    # Settings overlay.

    def open_settings(self) -> bool:
        if isinstance(self._state, Confirmation):
            self._disarm()
        if not isinstance(self._state, Normal):
            return False
        self._set_state(self._fresh_overlay())
        return True

    def close_settings(self) -> None:
        if isinstance(self._state, (SettingsOverlay, SettingsPicker)):
            log_event(logger, "arbiter.settings.discarded", reason="closed")
            self._set_state(Normal())

    async def _overlay_key(self, overlay: SettingsOverlay, key: KeyPress) -> None:
        if overlay.edit is not None:
            self._edit_key(overlay, overlay.edit, key)
            return
        if key.key in (Key.ESCAPE, Key.SETTINGS) or key.is_char(SETTINGS_KEY):
            self.close_settings()
            return
        if key.key is Key.UP:
            overlay.selection = (overlay.selection - 1) % len(SETTINGS_ROWS)
            return
        if key.key is Key.DOWN:
            overlay.selection = (overlay.selection + 1) % len(SETTINGS_ROWS)
            return
        if key.key is Key.CHAR and key.text in {"1", "2", "3", "4"}:
            overlay.draft.permission_mode = list(PermissionMode)[int(key.text) - 1]
            return
        if key.key is not Key.ENTER:
            return

        row = overlay.row
        if row is SettingsRow.PERMISSION_MODE:
            overlay.draft.permission_mode = overlay.draft.permission_mode.next()
        elif row is SettingsRow.CANCEL:
            self.close_settings()
        elif row is SettingsRow.SAVE:
            await self._save(overlay)
        elif row.option_field is not None:
            picker = open_picker(row.option_field, self._hints, overlay.draft)
            self._set_state(SettingsPicker(draft=overlay.draft, selection=overlay.selection, picker=picker))

    def _edit_key(self, overlay: SettingsOverlay, edit: TextEdit, key: KeyPress) -> None:
        if key.key is Key.ESCAPE:
            overlay.edit = None
        elif key.key is Key.ENTER:
            overlay.draft.set(edit.field, edit.text.strip())
            overlay.edit = None
        elif key.key in (Key.BACKSPACE, Key.DELETE):
            edit.text = edit.text[:-1]
        elif key.key is Key.CHAR:
            edit.text += key.text

    def _picker_key(self, state: SettingsPicker, key: KeyPress) -> None:
        picker = state.picker
        if key.key is Key.ESCAPE:
            self._set_state(SettingsOverlay(draft=state.draft, selection=state.selection))
        elif key.key is Key.UP:
            picker.move(-1)
        elif key.key is Key.DOWN:
            picker.move(1)
        elif key.key is Key.ENTER:
            option = picker.selected
            if option is None:
                return
            overlay = SettingsOverlay(draft=state.draft, selection=state.selection)
            if option.is_custom:
                overlay.edit = TextEdit(field=picker.field, text=state.draft.get(picker.field))
            else:
                state.draft.set(picker.field, option.value)
            self._set_state(overlay)

    async def _save(self, overlay: SettingsOverlay) -> None:
        candidate = normalize(overlay.draft)
        with log_context(permission_mode=candidate.permission_mode.value):
            if self._commit_settings is not None:
                self._set_state(ActionInProgress("Saving settings..."))
                try:
                    await _maybe_await(self._commit_settings(candidate))
                except Exception as exc:  # noqa: BLE001
                    reason = getattr(exc, "reason", None) or str(exc) or type(exc).__name__
                    log_event(logger, "arbiter.settings.commit_failed", level=logging.WARNING, error=reason)
                    self.notify_system(f"Failed to save settings: {reason}")
                    self._set_state(overlay)
                    return
            self._committed = candidate
            log_event(logger, "arbiter.settings.committed", **candidate.to_dict())
            self.notify_system("Saved settings.")
            self._set_state(Normal())

    # Handoff and exit.

    async def switch_to_remote(self) -> bool:
        if self._control is ControlMode.REMOTE:
            return False
        if self._switch_to_remote is None:
            self.notify_system("Remote control is not available.")
            return False
        return await self._handoff(ControlMode.REMOTE)

    async def switch_to_local(self) -> bool:
        if self._control is ControlMode.LOCAL or self._switch_to_local is None:
            return False
        return await self._handoff(ControlMode.LOCAL)

    async def _handoff(self, target: ControlMode) -> bool:
        if isinstance(self._state, ActionInProgress):
            return False
        handler = self._switch_to_local if target is ControlMode.LOCAL else self._switch_to_remote
        if handler is None:
            return False
        self._set_state(ActionInProgress(f"Switching to {target.value} control..."))
        try:
            await _maybe_await(handler())
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "arbiter.handoff.failed", level=logging.WARNING, target=target.value, error=str(exc))
            self.notify_system(f"Failed to switch to {target.value} control: {exc}")
            self._set_state(Normal())
            return False
        self._control = target
        log_event(logger, "arbiter.handoff", control=target.value)
        self.notify_system(f"Switched to {target.value} control.")
        self._set_state(Normal())
        return True

    async def exit(self) -> None:
        """Run the exit collaborator; input stays blocked afterwards."""
        if isinstance(self._state, ActionInProgress):
            return
        self._set_state(ActionInProgress("Exiting..."))
        log_event(logger, "arbiter.exit")
        if self._on_exit is None:
            return
        try:
            await _maybe_await(self._on_exit())
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "arbiter.exit.failed", level=logging.WARNING, error=str(exc))
            self.notify_system(f"Failed to exit: {exc}")
            self._set_state(Normal())

    def shutdown(self) -> None:
        """Drop the confirmation timer and watchers at teardown."""
        self._cancel_confirm_timer()
        self._watchers.clear()
