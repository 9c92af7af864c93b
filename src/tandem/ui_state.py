"""Control mode and the single tagged-union UI state owned by the arbiter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from tandem.settings import DraftSettings, OptionField, PickerState


class ControlMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class SettingsRow(str, Enum):
    PERMISSION_MODE = "permission_mode"
    MODEL = "model"
    REASONING_EFFORT = "reasoning_effort"
    PROFILE = "profile"
    SAVE = "save"
    CANCEL = "cancel"

    @property
    def label(self) -> str:
        return _ROW_LABELS[self]

    @property
    def option_field(self) -> OptionField | None:
        try:
            return OptionField(self.value)
        except ValueError:
            return None


_ROW_LABELS = {
    SettingsRow.PERMISSION_MODE: "Permission mode",
    SettingsRow.MODEL: "Model",
    SettingsRow.REASONING_EFFORT: "Reasoning effort",
    SettingsRow.PROFILE: "Profile",
    SettingsRow.SAVE: "Save & close",
    SettingsRow.CANCEL: "Cancel",
}

SETTINGS_ROWS: tuple[SettingsRow, ...] = tuple(SettingsRow)


@dataclass(frozen=True)
class Normal:
    pass


@dataclass(frozen=True)
class Confirmation:
    """Exit armed; a second interrupt inside the window exits."""


@dataclass
class TextEdit:
    field: OptionField
    text: str = ""


@dataclass
class SettingsOverlay:
    draft: DraftSettings
    selection: int = 0
    edit: TextEdit | None = None

    @property
    def row(self) -> SettingsRow:
        return SETTINGS_ROWS[self.selection]


@dataclass
class SettingsPicker:
    draft: DraftSettings
    selection: int
    picker: PickerState


@dataclass(frozen=True)
class ActionInProgress:
    label: str


UIState = Union[Normal, Confirmation, SettingsOverlay, SettingsPicker, ActionInProgress]
