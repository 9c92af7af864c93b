from __future__ import annotations

import json

import pytest

from tandem.cli import build_parser, initial_settings, main
from tandem.settings import PermissionMode, RunSettings


def test_run_arguments_build_initial_settings() -> None:
    args = build_parser().parse_args(
        ["run", "--model", "gpt-5", "--permission-mode", "safe-yolo", "--settings", "codex-acp", "--verbose"]
    )

    assert args.settings is True
    assert args.agent_program == "codex-acp"
    assert args.agent_args == ["--verbose"]
    assert initial_settings(args) == RunSettings(permission_mode=PermissionMode.SAFE_YOLO, model="gpt-5")


def test_run_defaults_leave_everything_unset() -> None:
    args = build_parser().parse_args(["run", "agent"])

    assert initial_settings(args) == RunSettings()


def test_unknown_permission_mode_is_rejected() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["run", "--permission-mode", "chaos", "agent"])


@pytest.mark.asyncio
async def test_hints_command_prints_json(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("TANDEM_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr("tandem.cli.configure_logging", lambda _config: None)
    config = tmp_path / "config.toml"
    config.write_text('model = "gpt-5"\n[profiles.work]\nmodel = "o3"\n', encoding="utf-8")

    code = await main(["tandem", "hints", "--config", str(config)])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["defaultModel"] == "gpt-5"
    assert payload["profiles"] == ["work"]
