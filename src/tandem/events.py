"""Session events observed by every renderer attached to a session."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class EventType(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"
    RESULT = "result"
    STATUS = "status"


def _new_event_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionEvent:
    type: EventType
    content: str
    id: str = field(default_factory=_new_event_id)
    timestamp: datetime = field(default_factory=_now)

    @classmethod
    def system(cls, content: str) -> "SessionEvent":
        return cls(type=EventType.SYSTEM, content=content)
