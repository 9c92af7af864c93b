from __future__ import annotations

from pathlib import Path

from tandem.config_hints import OptionHints, read_option_hints


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_reads_model_migration_effort_and_profiles(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
model = "gpt-5"
model_reasoning_effort = "high"

[notice.model_migrations]
"gpt-5" = "gpt-5.1"
"o3" = "gpt-5"

[profiles.work]
model = "o3"

[profiles."deep dive"]
model_reasoning_effort = "xhigh"
""",
    )

    hints = read_option_hints(path)

    assert hints == OptionHints(
        default_model="gpt-5",
        migrated_model="gpt-5.1",
        default_reasoning_effort="high",
        profiles=("deep dive", "work"),
    )


def test_model_inside_a_table_is_not_the_default(tmp_path: Path) -> None:
    path = _write(tmp_path, '[profiles.fast]\nmodel = "gpt-5-mini"\n')

    hints = read_option_hints(path)

    assert hints.default_model is None
    assert hints.migrated_model is None
    assert hints.profiles == ("fast",)


def test_missing_file_yields_empty_hints(tmp_path: Path) -> None:
    assert read_option_hints(tmp_path / "absent.toml") == OptionHints()


def test_malformed_file_yields_empty_hints(tmp_path: Path) -> None:
    path = _write(tmp_path, 'model = "unterminated\n[profiles\n')

    assert read_option_hints(path) == OptionHints()


def test_to_dict_uses_wire_names() -> None:
    hints = OptionHints(default_model="gpt", profiles=("a",))

    assert hints.to_dict() == {
        "defaultModel": "gpt",
        "migratedModel": None,
        "defaultReasoningEffort": None,
        "profiles": ["a"],
    }
