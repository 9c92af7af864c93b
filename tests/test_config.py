from __future__ import annotations

from pathlib import Path

from tandem.config import (
    DEFAULT_BUFFER_CAPACITY,
    DEFAULT_CONFIRM_WINDOW,
    DEFAULT_HISTORY_LIMIT,
    env_file,
    load_config,
)


def test_defaults_without_environment() -> None:
    config = load_config(load_env_file=False)

    assert config.buffer_capacity == DEFAULT_BUFFER_CAPACITY
    assert config.confirm_window == DEFAULT_CONFIRM_WINDOW
    assert config.history_limit == DEFAULT_HISTORY_LIMIT
    assert config.codex_config_path == Path.home() / ".codex" / "config.toml"


def test_environment_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TANDEM_BUFFER_CAPACITY", "10")
    monkeypatch.setenv("TANDEM_CONFIRM_WINDOW", "2.5")
    monkeypatch.setenv("TANDEM_HISTORY_LIMIT", "3")
    monkeypatch.setenv("CODEX_HOME", str(tmp_path / "codex"))

    config = load_config(load_env_file=False)

    assert config.buffer_capacity == 10
    assert config.confirm_window == 2.5
    assert config.history_limit == 3
    assert config.codex_config_path == tmp_path / "codex" / "config.toml"


def test_invalid_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("TANDEM_BUFFER_CAPACITY", "-4")
    monkeypatch.setenv("TANDEM_CONFIRM_WINDOW", "soon")

    config = load_config(load_env_file=False)

    assert config.buffer_capacity == DEFAULT_BUFFER_CAPACITY
    assert config.confirm_window == DEFAULT_CONFIRM_WINDOW


def test_env_file_is_read_without_overriding(monkeypatch) -> None:
    env_file().write_text("TANDEM_HISTORY_LIMIT=7\nTANDEM_BUFFER_CAPACITY=99\n", encoding="utf-8")
    monkeypatch.setenv("TANDEM_BUFFER_CAPACITY", "5")

    config = load_config()

    assert config.history_limit == 7
    assert config.buffer_capacity == 5
