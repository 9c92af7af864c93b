"""Line editing state for the local prompt."""

from __future__ import annotations

from dataclasses import dataclass, field

from tandem.config import DEFAULT_HISTORY_LIMIT


@dataclass
class PromptHistory:
    """Submitted lines, oldest first, with adjacent duplicates collapsed."""

    limit: int = DEFAULT_HISTORY_LIMIT
    entries: list[str] = field(default_factory=list)

    def append(self, line: str) -> bool:
        message = line.strip()
        if not message:
            return False
        if self.entries and self.entries[-1] == message:
            return False
        self.entries.append(message)
        if len(self.entries) > self.limit:
            del self.entries[: len(self.entries) - self.limit]
        return True

    def __len__(self) -> int:
        return len(self.entries)


class PromptEditor:
    """A single text buffer with a cursor and history recall.

    While a history entry is recalled, the unsent draft is kept aside and
    restored when navigation steps forward past the newest entry. Any direct
    edit during recall keeps the recalled text as the new draft and ends
    navigation.
    """

    def __init__(self, history: PromptHistory | None = None) -> None:
        self.history = history if history is not None else PromptHistory()
        self.text = ""
        self.cursor = 0
        self._history_index: int | None = None
        self._saved_draft: str | None = None

    @property
    def navigating_history(self) -> bool:
        return self._history_index is not None

    def _set_text(self, text: str) -> None:
        self.text = text
        self.cursor = len(text)

    def _leave_history(self) -> None:
        self._history_index = None
        self._saved_draft = None

    def insert(self, chars: str) -> None:
        if not chars:
            return
        self._leave_history()
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        self.cursor += len(chars)

    def delete_backward(self) -> None:
        if self.cursor == 0:
            return
        self._leave_history()
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1

    def delete_forward(self) -> None:
        if self.cursor >= len(self.text):
            return
        self._leave_history()
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def move(self, delta: int) -> None:
        self.cursor = max(0, min(len(self.text), self.cursor + delta))

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.text)

    def clear(self) -> None:
        self._leave_history()
        self.text = ""
        self.cursor = 0

    def history_back(self) -> None:
        entries = self.history.entries
        if not entries:
            return
        if self._history_index is None:
            self._saved_draft = self.text
            self._history_index = len(entries) - 1
        elif self._history_index > 0:
            self._history_index -= 1
        self._set_text(entries[self._history_index])

    def history_forward(self) -> None:
        if self._history_index is None:
            return
        entries = self.history.entries
        if self._history_index < len(entries) - 1:
            self._history_index += 1
            self._set_text(entries[self._history_index])
            return
        draft = self._saved_draft or ""
        self._leave_history()
        self._set_text(draft)

    def commit(self, line: str) -> None:
        """Record a submitted line and reset the buffer."""
        self.history.append(line)
        self.clear()
