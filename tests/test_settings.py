from __future__ import annotations

import pytest

from tandem.config_hints import OptionHints
from tandem.settings import (
    CUSTOM_LABEL,
    DraftSettings,
    OptionField,
    PermissionMode,
    RunSettings,
    build_options,
    labels,
    normalize,
    open_picker,
)


def test_blank_model_normalizes_to_unset() -> None:
    settings = normalize(DraftSettings(model="  "))

    assert settings.model is None
    assert "model" not in settings.to_dict()


def test_normalize_trims_fields_and_keeps_permission_mode() -> None:
    draft = DraftSettings(
        permission_mode=PermissionMode.SAFE_YOLO,
        model=" gpt-5 ",
        profile=" work",
        reasoning_effort="high ",
    )

    assert normalize(draft) == RunSettings(
        permission_mode=PermissionMode.SAFE_YOLO,
        model="gpt-5",
        profile="work",
        reasoning_effort="high",
    )


@pytest.mark.parametrize(
    "draft",
    [
        DraftSettings(),
        DraftSettings(model=" a ", profile="", reasoning_effort="  "),
        DraftSettings(permission_mode=PermissionMode.YOLO, model="m", profile=" p ", reasoning_effort="low"),
    ],
)
def test_normalize_is_idempotent(draft: DraftSettings) -> None:
    once = normalize(draft)

    assert normalize(DraftSettings.from_settings(once)) == once


def test_permission_mode_cycles() -> None:
    order = [PermissionMode.DEFAULT]
    for _ in range(4):
        order.append(order[-1].next())

    assert [mode.value for mode in order] == ["default", "read-only", "safe-yolo", "yolo", "default"]


def test_model_picker_orders_migration_before_default() -> None:
    hints = OptionHints(default_model="gpt", migrated_model="gpt2")

    options = build_options(OptionField.MODEL, hints, DraftSettings())

    assert labels(options) == ["(default)", "gpt2", "gpt", CUSTOM_LABEL]
    assert "gpt" in (options[0].description or "")
    assert options[-1].is_custom


def test_model_picker_adds_current_draft_once() -> None:
    hints = OptionHints(default_model="gpt")

    with_new = build_options(OptionField.MODEL, hints, DraftSettings(model="o3"))
    with_known = build_options(OptionField.MODEL, hints, DraftSettings(model="gpt"))

    assert labels(with_new) == ["(default)", "gpt", "o3 (current)", CUSTOM_LABEL]
    assert labels(with_known) == ["(default)", "gpt", CUSTOM_LABEL]


def test_model_picker_dedupes_identical_migration() -> None:
    hints = OptionHints(default_model="gpt", migrated_model="gpt")

    values = [opt.value for opt in build_options(OptionField.MODEL, hints, DraftSettings())]

    assert values == ["", "gpt", None]


def test_reasoning_effort_picker_appends_unknown_default() -> None:
    hints = OptionHints(default_reasoning_effort="minimal")

    options = build_options(OptionField.REASONING_EFFORT, hints, DraftSettings(reasoning_effort="turbo"))

    assert labels(options) == [
        "(default)",
        "low",
        "medium",
        "high",
        "xhigh",
        "minimal (default)",
        "turbo (current)",
        CUSTOM_LABEL,
    ]


def test_reasoning_effort_picker_skips_known_default() -> None:
    hints = OptionHints(default_reasoning_effort="high")

    values = [opt.value for opt in build_options(OptionField.REASONING_EFFORT, hints, DraftSettings())]

    assert values == ["", "low", "medium", "high", "xhigh", None]


def test_profile_picker_keeps_hint_order() -> None:
    hints = OptionHints(profiles=("zeta", "alpha"))

    options = build_options(OptionField.PROFILE, hints, DraftSettings(profile="alpha"))

    assert labels(options) == ["(default)", "zeta", "alpha", CUSTOM_LABEL]


@pytest.mark.parametrize("field", list(OptionField))
def test_option_lists_never_repeat_values(field: OptionField) -> None:
    hints = OptionHints(
        default_model="low",
        migrated_model="low",
        default_reasoning_effort="low",
        profiles=("low", "high", "low"),
    )

    values = [opt.value for opt in build_options(field, hints, DraftSettings(model="low", profile="low", reasoning_effort="low"))]

    assert len(values) == len(set(values))


def test_open_picker_selects_current_value() -> None:
    hints = OptionHints(default_model="gpt", migrated_model="gpt2")

    picker = open_picker(OptionField.MODEL, hints, DraftSettings(model="gpt"))

    assert picker.selected is not None
    assert picker.selected.value == "gpt"

    picker.move(-1)
    assert picker.selected.value == "gpt2"

    picker.move(-2)
    assert picker.selected.is_custom


@pytest.mark.parametrize("field", list(OptionField))
def test_value_spelled_like_custom_is_an_ordinary_option(field: OptionField) -> None:
    hints = OptionHints(
        default_model="__custom__",
        default_reasoning_effort="__custom__",
        profiles=("__custom__",),
    )
    draft = DraftSettings(model="__custom__", profile="__custom__", reasoning_effort="__custom__")

    options = build_options(field, hints, draft)
    values = [opt.value for opt in options]

    assert len(values) == len(set(values))
    assert [opt.is_custom for opt in options].count(True) == 1
    assert not next(opt for opt in options if opt.value == "__custom__").is_custom
