from __future__ import annotations

from tandem.events import EventType, SessionEvent
from tandem.message_buffer import MessageBuffer


def _contents(snapshot) -> list[str]:
    return [event.content for event in snapshot]


def test_subscriber_attached_late_gets_snapshot_then_updates() -> None:
    buffer = MessageBuffer()
    buffer.add_message("hi", EventType.USER)
    seen: list[list[str]] = []

    buffer.subscribe(lambda events: seen.append(_contents(events)))
    buffer.add_message("hello", EventType.ASSISTANT)

    assert seen == [["hi"], ["hi", "hello"]]


def test_subscribe_on_empty_buffer_delivers_empty_snapshot() -> None:
    buffer = MessageBuffer()
    seen: list[tuple] = []

    buffer.subscribe(seen.append)

    assert seen == [()]


def test_eviction_keeps_most_recent_events() -> None:
    buffer = MessageBuffer(capacity=3)
    for idx in range(5):
        buffer.add_message(f"m{idx}")

    assert _contents(buffer.snapshot()) == ["m2", "m3", "m4"]
    assert len(buffer) == 3


def test_unsubscribe_is_idempotent_and_stops_delivery() -> None:
    buffer = MessageBuffer()
    seen: list[list[str]] = []
    unsubscribe = buffer.subscribe(lambda events: seen.append(_contents(events)))

    unsubscribe()
    unsubscribe()
    buffer.add_message("late")

    assert seen == [[]]
    assert buffer.subscriber_count == 0


def test_failing_subscriber_does_not_block_others() -> None:
    buffer = MessageBuffer()
    seen: list[list[str]] = []

    def _boom(_events) -> None:
        raise RuntimeError("renderer crashed")

    buffer.subscribe(_boom)
    buffer.subscribe(lambda events: seen.append(_contents(events)))
    buffer.add_message("still delivered")

    assert seen == [[], ["still delivered"]]
    assert _contents(buffer.snapshot()) == ["still delivered"]


def test_subscriber_may_unsubscribe_another_during_fanout() -> None:
    buffer = MessageBuffer()
    second_seen: list[list[str]] = []
    handles: dict[str, object] = {}

    def _first(events) -> None:
        if events:
            handles["second"]()

    buffer.subscribe(_first)
    handles["second"] = buffer.subscribe(lambda events: second_seen.append(_contents(events)))
    buffer.add_message("x")

    assert second_seen == [[]]


def test_events_are_immutable_and_unique() -> None:
    first = SessionEvent(type=EventType.USER, content="a")
    second = SessionEvent(type=EventType.USER, content="a")

    assert first.id != second.id
    try:
        first.content = "b"  # type: ignore[misc]
    except AttributeError:
        pass
    else:  # pragma: no cover
        raise AssertionError("SessionEvent should be frozen")


def test_snapshot_cannot_mutate_buffer() -> None:
    buffer = MessageBuffer()
    buffer.add_message("a")
    snapshot = buffer.snapshot()

    assert isinstance(snapshot, tuple)
    assert _contents(buffer.snapshot()) == ["a"]


def test_append_from_a_subscriber_keeps_order_for_everyone() -> None:
    buffer = MessageBuffer()
    first_seen: list[list[str]] = []
    second_seen: list[list[str]] = []

    def _reply(events) -> None:
        first_seen.append(_contents(events))
        if _contents(events) == ["one"]:
            buffer.add_message("two")

    buffer.subscribe(_reply)
    buffer.subscribe(lambda events: second_seen.append(_contents(events)))
    buffer.add_message("one")

    assert first_seen == [[], ["one"], ["one", "two"]]
    assert second_seen == [[], ["one"], ["one", "two"]]


def test_subscriber_added_during_fanout_gets_no_stale_or_repeated_snapshot() -> None:
    buffer = MessageBuffer()
    late_seen: list[list[str]] = []

    def _attach(events) -> None:
        if _contents(events) == ["one"]:
            buffer.add_message("two")
            buffer.subscribe(lambda snap: late_seen.append(_contents(snap)))

    buffer.subscribe(_attach)
    buffer.add_message("one")
    buffer.add_message("three")

    assert late_seen == [["one", "two"], ["one", "two", "three"]]
