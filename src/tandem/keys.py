"""Renderer-neutral key presses consumed by the mode arbiter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Key(str, Enum):
    INTERRUPT = "interrupt"
    ESCAPE = "escape"
    ENTER = "enter"
    BACKSPACE = "backspace"
    DELETE = "delete"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    HOME = "home"
    END = "end"
    SETTINGS = "settings"
    CHAR = "char"


@dataclass(frozen=True)
class KeyPress:
    key: Key
    text: str = ""

    @classmethod
    def char(cls, text: str) -> "KeyPress":
        return cls(Key.CHAR, text)

    def is_char(self, text: str | None = None) -> bool:
        if self.key is not Key.CHAR:
            return False
        return text is None or self.text == text


INTERRUPT = KeyPress(Key.INTERRUPT)
ESCAPE = KeyPress(Key.ESCAPE)
ENTER = KeyPress(Key.ENTER)
BACKSPACE = KeyPress(Key.BACKSPACE)
DELETE = KeyPress(Key.DELETE)
UP = KeyPress(Key.UP)
DOWN = KeyPress(Key.DOWN)
LEFT = KeyPress(Key.LEFT)
RIGHT = KeyPress(Key.RIGHT)
HOME = KeyPress(Key.HOME)
END = KeyPress(Key.END)
SETTINGS = KeyPress(Key.SETTINGS)
