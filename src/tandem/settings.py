"""Run settings: draft/commit model and picker option construction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from tandem.config_hints import OptionHints


class PermissionMode(str, Enum):
    DEFAULT = "default"
    READ_ONLY = "read-only"
    SAFE_YOLO = "safe-yolo"
    YOLO = "yolo"

    def next(self) -> "PermissionMode":
        modes = list(PermissionMode)
        return modes[(modes.index(self) + 1) % len(modes)]


PERMISSION_MODE_DESCRIPTIONS: dict[PermissionMode, str] = {
    PermissionMode.DEFAULT: "Asks for permission for most actions (recommended).",
    PermissionMode.READ_ONLY: "Read-only sandbox; write actions should fail.",
    PermissionMode.SAFE_YOLO: "Runs without prompting in a sandbox; may still ask to escalate on failure.",
    PermissionMode.YOLO: "Full access: no sandbox and no approval prompts.",
}

REASONING_EFFORTS: tuple[str, ...] = ("low", "medium", "high", "xhigh")

DEFAULT_LABEL = "(default)"
CUSTOM_LABEL = "Custom…"


class OptionField(str, Enum):
    MODEL = "model"
    REASONING_EFFORT = "reasoning_effort"
    PROFILE = "profile"

    @property
    def label(self) -> str:
        return {
            OptionField.MODEL: "Model",
            OptionField.REASONING_EFFORT: "Reasoning effort",
            OptionField.PROFILE: "Profile",
        }[self]


@dataclass(frozen=True)
class RunSettings:
    """Committed settings; `None` means "use the agent's own default"."""

    permission_mode: PermissionMode = PermissionMode.DEFAULT
    model: str | None = None
    profile: str | None = None
    reasoning_effort: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {"permissionMode": self.permission_mode.value}
        if self.model is not None:
            payload["model"] = self.model
        if self.profile is not None:
            payload["profile"] = self.profile
        if self.reasoning_effort is not None:
            payload["reasoningEffort"] = self.reasoning_effort
        return payload


@dataclass
class DraftSettings:
    """Editable copy of the run settings; blank strings mean unset."""

    permission_mode: PermissionMode = PermissionMode.DEFAULT
    model: str = ""
    profile: str = ""
    reasoning_effort: str = ""

    @classmethod
    def from_settings(cls, settings: RunSettings | None) -> "DraftSettings":
        if settings is None:
            return cls()
        return cls(
            permission_mode=settings.permission_mode or PermissionMode.DEFAULT,
            model=settings.model or "",
            profile=settings.profile or "",
            reasoning_effort=settings.reasoning_effort or "",
        )

    def get(self, option: OptionField) -> str:
        return getattr(self, option.value)

    def set(self, option: OptionField, value: str) -> None:
        setattr(self, option.value, value)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize(draft: DraftSettings) -> RunSettings:
    return RunSettings(
        permission_mode=draft.permission_mode,
        model=_blank_to_none(draft.model),
        profile=_blank_to_none(draft.profile),
        reasoning_effort=_blank_to_none(draft.reasoning_effort),
    )


@dataclass(frozen=True)
class PickerOption:
    """One picker row; the free-text entry carries no value of its own."""

    value: str | None
    label: str
    description: str | None = None
    custom: bool = False

    @property
    def is_custom(self) -> bool:
        return self.custom


class _OptionList:
    """Ordered option list that refuses a value it already holds."""

    def __init__(self) -> None:
        self.items: list[PickerOption] = []
        self._seen: set[str] = set()

    def add(self, value: str | None, label: str | None = None, description: str | None = None) -> None:
        if value is None or value in self._seen:
            return
        self._seen.add(value)
        self.items.append(PickerOption(value=value, label=label or value, description=description))

    def add_current(self, value: str) -> None:
        current = value.strip()
        if current:
            self.add(current, f"{current} (current)", "Current draft value")


def _default_entry(description: str) -> PickerOption:
    return PickerOption(value="", label=DEFAULT_LABEL, description=description)


def model_options(hints: OptionHints, draft: DraftSettings) -> list[PickerOption]:
    options = _OptionList()
    if hints.default_model:
        options.add("", DEFAULT_LABEL, f"Use the configured default ({hints.default_model})")
    else:
        options.add("", DEFAULT_LABEL, "Use the agent's default model")
    options.add(hints.migrated_model, description="Suggested by model migration")
    options.add(hints.default_model, description="Configured default model")
    options.add_current(draft.model)
    return options.items


def reasoning_effort_options(hints: OptionHints, draft: DraftSettings) -> list[PickerOption]:
    options = _OptionList()
    if hints.default_reasoning_effort:
        options.add("", DEFAULT_LABEL, f"Use the configured default ({hints.default_reasoning_effort})")
    else:
        options.add("", DEFAULT_LABEL, "Use the agent's default reasoning effort")
    for effort in REASONING_EFFORTS:
        options.add(effort)
    default_effort = hints.default_reasoning_effort
    if default_effort:
        options.add(default_effort, f"{default_effort} {DEFAULT_LABEL}", "Configured default reasoning effort")
    options.add_current(draft.reasoning_effort)
    return options.items


def profile_options(hints: OptionHints, draft: DraftSettings) -> list[PickerOption]:
    options = _OptionList()
    options.add("", DEFAULT_LABEL, "Do not select a profile")
    for profile in hints.profiles:
        options.add(profile, description="Profile from config")
    options.add_current(draft.profile)
    return options.items


def build_options(option: OptionField, hints: OptionHints, draft: DraftSettings) -> list[PickerOption]:
    """Return the deterministic candidate list for a picker, ending with "Custom…"."""
    builders = {
        OptionField.MODEL: model_options,
        OptionField.REASONING_EFFORT: reasoning_effort_options,
        OptionField.PROFILE: profile_options,
    }
    items = builders[option](hints, draft)
    items.append(PickerOption(value=None, label=CUSTOM_LABEL, description="Type a value", custom=True))
    return items


@dataclass
class PickerState:
    field: OptionField
    options: list[PickerOption] = field(default_factory=list)
    selected_index: int = 0

    @property
    def selected(self) -> PickerOption | None:
        if not self.options:
            return None
        return self.options[self.selected_index]

    def move(self, delta: int) -> None:
        if not self.options:
            return
        self.selected_index = (self.selected_index + delta) % len(self.options)


def open_picker(option: OptionField, hints: OptionHints, draft: DraftSettings) -> PickerState:
    options = build_options(option, hints, draft)
    current = draft.get(option).strip()
    index = next((i for i, opt in enumerate(options) if opt.value == current), 0)
    return PickerState(field=option, options=options, selected_index=index)


def labels(options: Iterable[PickerOption]) -> list[str]:
    return [opt.label for opt in options]
