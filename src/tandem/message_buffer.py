"""Capacity-bounded session log with synchronous fan-out to subscribers."""

from __future__ import annotations

import itertools
import logging
from collections import deque
from typing import Callable

from tandem.config import DEFAULT_BUFFER_CAPACITY
from tandem.events import EventType, SessionEvent
from tandem.log_utils import log_event

logger = logging.getLogger(__name__)

Snapshot = tuple[SessionEvent, ...]
Subscriber = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class MessageBuffer:
    """Ordered log of session events.

    Subscribers receive the full ordered view: once when they attach, then
    after every append. Snapshots are tuples so a subscriber cannot mutate the
    buffer through them.

    An append made from inside a subscriber callback is queued and fanned out
    once the current round finishes, so every subscriber sees snapshots in
    append order. Each subscriber remembers the last generation it was given
    and never receives an older or repeated one.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._events: deque[SessionEvent] = deque(maxlen=capacity)
        self._subscribers: dict[int, Subscriber] = {}
        self._delivered: dict[int, int] = {}
        self._handles = itertools.count(1)
        self._generation = 0
        self._queued: deque[tuple[int, Snapshot]] = deque()
        self._notifying = False

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._events)

    def snapshot(self) -> Snapshot:
        return tuple(self._events)

    def append(self, event: SessionEvent) -> None:
        self._events.append(event)
        self._generation += 1
        self._queued.append((self._generation, self.snapshot()))
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._queued:
                generation, snapshot = self._queued.popleft()
                self._notify(generation, snapshot)
        finally:
            self._notifying = False

    def add_message(self, content: str, type: EventType | str = EventType.ASSISTANT) -> SessionEvent:
        event = SessionEvent(type=EventType(type), content=content)
        self.append(event)
        return event

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        handle = next(self._handles)
        self._subscribers[handle] = callback
        self._deliver(handle, callback, self._generation, self.snapshot())

        def _unsubscribe() -> None:
            self._subscribers.pop(handle, None)
            self._delivered.pop(handle, None)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _notify(self, generation: int, snapshot: Snapshot) -> None:
        for handle, callback in list(self._subscribers.items()):
            # A callback may unsubscribe another one mid fan-out.
            if handle not in self._subscribers:
                continue
            if self._delivered.get(handle, -1) >= generation:
                continue
            self._deliver(handle, callback, generation, snapshot)

    def _deliver(self, handle: int, callback: Subscriber, generation: int, snapshot: Snapshot) -> None:
        self._delivered[handle] = generation
        try:
            callback(snapshot)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "buffer.subscriber.error",
                level=logging.WARNING,
                handle=handle,
                error=str(exc),
            )
