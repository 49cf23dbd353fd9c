"""
Lightweight event bus for citation graph change notifications.

The graph publishes an event only after a mutation has fully committed, so
subscribers never observe a half-applied create or remove.

Design Principles:
- Publisher-subscriber pattern (decoupled)
- Supports both sync and async handlers
- Non-blocking (async handlers scheduled via create_task)
- Handler failures are logged, never propagated back into the graph
- Type-safe events via msgspec

Usage:
    from citegraph.infrastructure.event_bus import get_event_bus, EventType

    def on_collected(event):
        print(f"Collected: {event.payload['publication_id']}")

    get_event_bus().subscribe(EventType.PUBLICATION_COLLECTED, on_collected)
"""
from typing import Callable, List, Dict, Any, Optional
from enum import Enum
import msgspec
import asyncio
from collections import defaultdict
import logging


logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events published by the citation graph."""
    PUBLICATION_CREATED = "publication_created"
    CITATION_ADDED = "citation_added"
    PUBLICATION_REMOVED = "publication_removed"
    PUBLICATION_COLLECTED = "publication_collected"


class GraphEvent(msgspec.Struct, kw_only=True):
    """
    Event emitted when the graph changes.

    Attributes:
        type: Type of event
        payload: Event-specific data (publication_id, parent_ids, ...)
        timestamp: Unix timestamp when event occurred
        source: Source of event (GraphConfig.event_source)
    """
    type: EventType
    payload: Dict[str, Any]
    timestamp: float
    source: str


class EventBus:
    """
    Pub/sub for graph mutations.

    Thread Safety:
        NOT thread-safe, like the graph itself.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[Callable]] = defaultdict(list)
        self._async_subscribers: Dict[EventType, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable[[GraphEvent], None]):
        """Subscribe a synchronous handler. Subscribing twice is a no-op."""
        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)
            logger.debug(f"Subscribed sync handler to {event_type.value}")

    def subscribe_async(self, event_type: EventType, handler: Callable[[GraphEvent], Any]):
        """
        Subscribe a coroutine function.

        The handler is scheduled on the running event loop when an event is
        published; without a running loop the event is dropped for that
        handler and a warning is logged.
        """
        if handler not in self._async_subscribers[event_type]:
            self._async_subscribers[event_type].append(handler)
            logger.debug(f"Subscribed async handler to {event_type.value}")

    def subscribe_all(self, handler: Callable[[GraphEvent], None]):
        """Subscribe a synchronous handler to every event type."""
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def publish(self, event: GraphEvent):
        """
        Publish an event to all subscribers.

        Sync handlers run immediately, in subscription order. Async handlers
        are scheduled with create_task. Exceptions in handlers are logged
        but don't propagate.
        """
        logger.debug(
            f"Publishing {event.type.value} from {event.source} "
            f"(payload keys: {list(event.payload.keys())})"
        )

        for handler in list(self._subscribers[event.type]):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in sync handler for {event.type.value}: {e}",
                    exc_info=True
                )

        for handler in list(self._async_subscribers[event.type]):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(
                    f"Cannot schedule async handler for {event.type.value}: "
                    "no event loop running"
                )
                continue
            loop.create_task(handler(event))

    def unsubscribe(self, event_type: EventType, handler: Callable):
        """Remove `handler` from both the sync and async lists for `event_type`."""
        if handler in self._subscribers[event_type]:
            self._subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed sync handler from {event_type.value}")

        if handler in self._async_subscribers[event_type]:
            self._async_subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed async handler from {event_type.value}")

    def unsubscribe_all(self, handler: Callable):
        for event_type in EventType:
            self.unsubscribe(event_type, handler)

    def clear_subscribers(self, event_type: Optional[EventType] = None):
        """
        Clear all subscribers for an event type (or all types).

        Warning:
            This is primarily for testing.
        """
        if event_type is None:
            self._subscribers.clear()
            self._async_subscribers.clear()
            logger.info("Cleared all event subscribers")
        else:
            self._subscribers[event_type].clear()
            self._async_subscribers[event_type].clear()
            logger.info(f"Cleared subscribers for {event_type.value}")

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        """Number of sync + async subscribers for a type (None = all types)."""
        if event_type is None:
            total = sum(len(handlers) for handlers in self._subscribers.values())
            total += sum(len(handlers) for handlers in self._async_subscribers.values())
            return total
        return (
            len(self._subscribers[event_type]) +
            len(self._async_subscribers[event_type])
        )


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance (singleton)."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
        logger.info("Initialized global event bus")
    return _event_bus


def reset_event_bus() -> None:
    """Drop the global event bus. The next get_event_bus() builds a fresh one."""
    global _event_bus
    _event_bus = None
