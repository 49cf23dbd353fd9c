"""
Unit tests for citegraph/infrastructure/event_bus.py - EventBus
"""
import asyncio
import time

import pytest

from citegraph.infrastructure.event_bus import (
    EventBus,
    EventType,
    GraphEvent,
    get_event_bus,
    reset_event_bus,
)


def make_event(event_type=EventType.PUBLICATION_CREATED, **payload):
    return GraphEvent(
        type=event_type,
        payload=payload or {"publication_id": "A"},
        timestamp=time.time(),
        source="test",
    )


def test_sync_handler_receives_event(event_bus):
    received = []
    event_bus.subscribe(EventType.PUBLICATION_CREATED, received.append)

    event = make_event()
    event_bus.publish(event)

    assert received == [event]


def test_handler_only_sees_its_type(event_bus):
    received = []
    event_bus.subscribe(EventType.PUBLICATION_REMOVED, received.append)

    event_bus.publish(make_event(EventType.PUBLICATION_CREATED))

    assert received == []


def test_subscribe_is_idempotent(event_bus):
    """Validate that subscribing the same handler twice delivers once."""
    received = []
    event_bus.subscribe(EventType.CITATION_ADDED, received.append)
    event_bus.subscribe(EventType.CITATION_ADDED, received.append)

    event_bus.publish(make_event(EventType.CITATION_ADDED))

    assert len(received) == 1
    assert event_bus.subscriber_count(EventType.CITATION_ADDED) == 1


def test_subscribe_all_and_unsubscribe_all(event_bus):
    """
    Validate that subscribe_all() covers every type and unsubscribe_all() undoes it.
    """
    received = []
    event_bus.subscribe_all(received.append)
    assert event_bus.subscriber_count() == len(EventType)

    for event_type in EventType:
        event_bus.publish(make_event(event_type))
    assert [event.type for event in received] == list(EventType)

    event_bus.unsubscribe_all(received.append)
    assert event_bus.subscriber_count() == 0


def test_handler_error_is_logged_not_raised(event_bus, caplog):
    """
    Validate that a failing handler does not stop delivery to others.

    Verifies:
    - publish() returns normally
    - Later handlers still run
    - The failure is logged at ERROR
    """
    received = []

    def broken(event):
        raise ValueError("boom")

    event_bus.subscribe(EventType.PUBLICATION_CREATED, broken)
    event_bus.subscribe(EventType.PUBLICATION_CREATED, received.append)

    with caplog.at_level("ERROR", logger="citegraph.infrastructure.event_bus"):
        event_bus.publish(make_event())

    assert len(received) == 1
    assert "boom" in caplog.text


def test_async_handler_without_loop_is_skipped(event_bus, caplog):
    async def handler(event):
        pass

    event_bus.subscribe_async(EventType.PUBLICATION_CREATED, handler)

    with caplog.at_level("WARNING", logger="citegraph.infrastructure.event_bus"):
        event_bus.publish(make_event())

    assert "no event loop running" in caplog.text


@pytest.mark.asyncio
async def test_async_handler_runs_on_loop(event_bus):
    """Validate that async handlers are scheduled on the running loop."""
    received = []

    async def handler(event):
        received.append(event)

    event_bus.subscribe_async(EventType.PUBLICATION_REMOVED, handler)
    event_bus.publish(make_event(EventType.PUBLICATION_REMOVED))
    await asyncio.sleep(0)

    assert len(received) == 1


def test_clear_subscribers(event_bus):
    event_bus.subscribe(EventType.PUBLICATION_CREATED, print)
    event_bus.subscribe(EventType.PUBLICATION_REMOVED, print)

    event_bus.clear_subscribers(EventType.PUBLICATION_CREATED)
    assert event_bus.subscriber_count() == 1

    event_bus.clear_subscribers()
    assert event_bus.subscriber_count() == 0


def test_global_bus_singleton_and_reset():
    first = get_event_bus()
    assert get_event_bus() is first

    reset_event_bus()
    assert get_event_bus() is not first
