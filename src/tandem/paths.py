"""App directories resolved with platformdirs and created on first use."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "tandem"


def _platform_dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=False, ensure_exists=True)


def config_dir() -> Path:
    """Holds the optional `.env` read at startup."""
    return Path(_platform_dirs().user_config_path)


def log_dir() -> Path:
    return Path(_platform_dirs().user_log_path)
