"""Runtime configuration read from the environment and an optional `.env` file."""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from tandem.paths import config_dir

DEFAULT_BUFFER_CAPACITY = 1000
DEFAULT_CONFIRM_WINDOW = 15.0
DEFAULT_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class TandemConfig:
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY
    confirm_window: float = DEFAULT_CONFIRM_WINDOW
    history_limit: int = DEFAULT_HISTORY_LIMIT
    codex_home: Path = Path.home() / ".codex"

    @property
    def codex_config_path(self) -> Path:
        return self.codex_home / "config.toml"


def env_file() -> Path:
    return config_dir() / ".env"


def _positive_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    with contextlib.suppress(ValueError):
        parsed = int(value)
        if parsed > 0:
            return parsed
    return default


def _positive_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    with contextlib.suppress(ValueError):
        parsed = float(value)
        if parsed > 0:
            return parsed
    return default


def load_config(*, load_env_file: bool = True) -> TandemConfig:
    """Build the runtime config; unparsable values fall back to defaults."""
    if load_env_file:
        load_dotenv(env_file(), override=False)
    codex_home = os.getenv("CODEX_HOME")
    return TandemConfig(
        buffer_capacity=_positive_int(os.getenv("TANDEM_BUFFER_CAPACITY"), DEFAULT_BUFFER_CAPACITY),
        confirm_window=_positive_float(os.getenv("TANDEM_CONFIRM_WINDOW"), DEFAULT_CONFIRM_WINDOW),
        history_limit=_positive_int(os.getenv("TANDEM_HISTORY_LIMIT"), DEFAULT_HISTORY_LIMIT),
        codex_home=Path(codex_home).expanduser() if codex_home else Path.home() / ".codex",
    )
