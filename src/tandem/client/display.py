"""Rich renderables for the session log, settings overlay and footer."""

from __future__ import annotations

from io import StringIO
from typing import Iterable

from rich.console import Console, Group, RenderableType
from rich.rule import Rule
from rich.text import Text

from tandem.arbiter import ModeArbiter
from tandem.config_hints import OptionHints
from tandem.events import EventType, SessionEvent
from tandem.prompt_editor import PromptEditor
from tandem.settings import DEFAULT_LABEL, PERMISSION_MODE_DESCRIPTIONS, DraftSettings, PermissionMode
from tandem.ui_state import (
    SETTINGS_ROWS,
    ActionInProgress,
    Confirmation,
    ControlMode,
    SettingsOverlay,
    SettingsPicker,
    SettingsRow,
)

EVENT_STYLES: dict[EventType, str] = {
    EventType.USER: "magenta",
    EventType.ASSISTANT: "cyan",
    EventType.SYSTEM: "blue",
    EventType.TOOL: "yellow",
    EventType.RESULT: "green",
    EventType.STATUS: "bright_black",
}


def render_to_ansi(renderable: RenderableType, *, width: int = 80) -> str:
    buffer = StringIO()
    console = Console(
        file=buffer,
        width=width,
        force_terminal=True,
        color_system="standard",
        markup=False,
        highlight=False,
    )
    console.print(renderable, end="")
    return buffer.getvalue()


def render_events(events: Iterable[SessionEvent], *, limit: int | None = None) -> RenderableType:
    items = list(events)
    if limit is not None:
        items = items[-max(1, limit) :]
    if not items:
        return Text("Waiting for messages...", style="dim")
    lines: list[RenderableType] = []
    for event in items:
        style = EVENT_STYLES.get(event.type, "white")
        if "\x1b" in event.content:
            lines.append(Text.from_ansi(event.content))
        else:
            lines.append(Text(event.content, style=style))
    return Group(*lines)


def _row_value(row: SettingsRow, draft: DraftSettings) -> str:
    if row is SettingsRow.PERMISSION_MODE:
        return draft.permission_mode.value
    option = row.option_field
    if option is None:
        return ""
    value = draft.get(option)
    return value if value.strip() else DEFAULT_LABEL


def settings_help_text(row: SettingsRow, draft: DraftSettings, hints: OptionHints) -> str:
    if row is SettingsRow.PERMISSION_MODE:
        return PERMISSION_MODE_DESCRIPTIONS[draft.permission_mode]
    if row is SettingsRow.MODEL:
        bits = ["Leave empty to use the default model."]
        if hints.default_model:
            bits.append(f"Detected default: {hints.default_model}")
        if hints.migrated_model:
            bits.append(f"Suggested: {hints.migrated_model}")
        return " ".join(bits)
    if row is SettingsRow.REASONING_EFFORT:
        if hints.default_reasoning_effort:
            return f"Leave empty to use the default ({hints.default_reasoning_effort})."
        return "Leave empty to use the default reasoning effort."
    if row is SettingsRow.PROFILE:
        return "Leave empty to use the default profile."
    if row is SettingsRow.SAVE:
        return "Applies these settings for new turns."
    return "Esc or s to close without saving."


def render_settings(overlay: SettingsOverlay, hints: OptionHints) -> RenderableType:
    parts: list[RenderableType] = [
        Text("Settings", style="bold cyan"),
        Text("↑/↓ to navigate • Enter to edit • Esc to close", style="dim"),
        Text(""),
    ]
    edit = overlay.edit
    for idx, row in enumerate(SETTINGS_ROWS):
        selected = idx == overlay.selection
        prefix = "› " if selected else "  "
        if row in (SettingsRow.SAVE, SettingsRow.CANCEL):
            line = f"{prefix}{row.label}"
        elif edit is not None and row.option_field is edit.field:
            line = f"{prefix}{row.label}: {edit.text}_"
        else:
            line = f"{prefix}{row.label}: {_row_value(row, overlay.draft)}"
        parts.append(Text(line, style="bold yellow" if selected else "white"))

    parts.append(Rule(style="dim"))
    if edit is not None:
        parts.append(Text(f"Editing {edit.field.label.lower()}: Enter to save • Esc to cancel", style="dim"))
    else:
        parts.append(Text(settings_help_text(overlay.row, overlay.draft, hints), style="dim"))
        if overlay.row is SettingsRow.PERMISSION_MODE:
            if overlay.draft.permission_mode is PermissionMode.YOLO:
                parts.append(Text("Warning: yolo disables sandboxing and approvals.", style="bold red"))
            parts.append(Text("Tip: press 1–4 to pick a mode quickly.", style="dim"))
    return Group(*parts)


def render_picker(state: SettingsPicker) -> RenderableType:
    picker = state.picker
    parts: list[RenderableType] = [
        Text(f"Select {picker.field.label.lower()}", style="bold cyan"),
        Text("↑/↓ to move • Enter to choose • Esc to go back", style="dim"),
        Text(""),
    ]
    for idx, option in enumerate(picker.options):
        selected = idx == picker.selected_index
        line = Text(("› " if selected else "  ") + option.label, style="bold yellow" if selected else "white")
        if option.description:
            line.append(f"  {option.description}", style="dim")
        parts.append(line)
    return Group(*parts)


def render_prompt(editor: PromptEditor) -> Text:
    text = Text("> ", style="bold green")
    before = editor.text[: editor.cursor]
    at = editor.text[editor.cursor : editor.cursor + 1] or " "
    after = editor.text[editor.cursor + 1 :]
    text.append(before)
    text.append(at, style="reverse")
    text.append(after)
    return text


def render_footer(arbiter: ModeArbiter) -> Text:
    state = arbiter.state
    if isinstance(state, ActionInProgress):
        return Text(state.label or "Working...", style="bold bright_black")
    if isinstance(state, (SettingsOverlay, SettingsPicker)):
        return Text("Settings • Enter to select • Esc or Ctrl-S to close", style="bold yellow")
    if isinstance(state, Confirmation):
        return Text("Press Ctrl-C again to exit the agent", style="bold red")
    if arbiter.control_mode is ControlMode.REMOTE:
        takeover = "Ctrl-C to take control" if arbiter.can_switch_to_local else "Ctrl-C to exit"
        return Text(f"Remote control active • s Settings • {takeover}", style="bold green")
    return Text("Local control • Ctrl-S settings • /remote • Ctrl-C to exit", style="bold green")


def render_main(arbiter: ModeArbiter, events: Iterable[SessionEvent], *, height: int = 24) -> RenderableType:
    """Body of the screen: overlay when open, the session log otherwise."""
    state = arbiter.state
    if isinstance(state, SettingsPicker):
        return render_picker(state)
    if isinstance(state, SettingsOverlay):
        return render_settings(state, arbiter.hints)
    return render_events(events, limit=max(1, height))
