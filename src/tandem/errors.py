"""Exception types surfaced by the relay core."""

from __future__ import annotations

from typing import Any


class TandemError(Exception):
    """Base class for relay errors."""


class ApprovalValidationError(TandemError):
    """An inbound approval request is missing or mistypes a structural field."""

    def __init__(self, message: str, *, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @property
    def locations(self) -> list[str]:
        return [".".join(str(part) for part in err.get("loc", ())) for err in self.errors]


class SettingsCommitError(TandemError):
    """The settings collaborator rejected a commit."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
