"""Option hints read from the agent's TOML configuration file."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tandem.log_utils import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionHints:
    default_model: str | None = None
    migrated_model: str | None = None
    default_reasoning_effort: str | None = None
    profiles: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaultModel": self.default_model,
            "migratedModel": self.migrated_model,
            "defaultReasoningEffort": self.default_reasoning_effort,
            "profiles": list(self.profiles),
        }


def _string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _model_migrations(data: dict[str, Any]) -> dict[str, str]:
    notice = data.get("notice")
    if not isinstance(notice, dict):
        return {}
    migrations = notice.get("model_migrations")
    if not isinstance(migrations, dict):
        return {}
    return {str(src): dst for src, dst in migrations.items() if isinstance(dst, str) and dst}


def _profiles(data: dict[str, Any]) -> tuple[str, ...]:
    names: set[str] = set()
    for key in ("profiles", "profile"):
        table = data.get(key)
        if not isinstance(table, dict):
            continue
        names.update(name.strip() for name, body in table.items() if isinstance(body, dict) and name.strip())
    return tuple(sorted(names))


def parse_option_hints(data: dict[str, Any]) -> OptionHints:
    default_model = _string(data.get("model"))
    migrated = _model_migrations(data).get(default_model) if default_model else None
    return OptionHints(
        default_model=default_model,
        migrated_model=_string(migrated),
        default_reasoning_effort=_string(data.get("model_reasoning_effort")),
        profiles=_profiles(data),
    )


def read_option_hints(path: Path) -> OptionHints:
    """Read hints from `path`; any failure yields empty hints."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return OptionHints()
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        log_event(logger, "hints.read.error", level=logging.WARNING, path=str(path), error=str(exc))
        return OptionHints()
    hints = parse_option_hints(data)
    log_event(
        logger,
        "hints.read",
        path=str(path),
        default_model=hints.default_model,
        migrated_model=hints.migrated_model,
        profiles=len(hints.profiles),
    )
    return hints
