"""
CITEGRAPH MUTATION LOG - The Audit Trail

Records every committed graph mutation published on an event bus.

Architecture:
- MutationEvent: one record per GraphEvent, with a sequence number
- EventBuffer: bounded in-memory ring buffer for recent events
- FileLogger: optional newline-delimited JSON log, one file per day
- MutationLogger: subscribes to the bus and fans events out to the above

Usage:
    with MutationLogger(event_bus=bus) as mutations:
        graph.remove("A")
        for event in mutations.get_events_by_type(EventType.PUBLICATION_COLLECTED):
            print(event.publication_id)
"""
import msgspec
from typing import Any, Optional, List
from datetime import datetime, timezone
from pathlib import Path
from collections import deque
import io
import logging

from citegraph.infrastructure.config import GraphConfig
from citegraph.infrastructure.event_bus import EventBus, EventType, GraphEvent, get_event_bus

logger = logging.getLogger(__name__)


class MutationEvent(msgspec.Struct, kw_only=True):
    """A single recorded mutation."""
    timestamp: str
    sequence: int
    mutation_type: str
    publication_id: Any
    parent_ids: List[Any] = msgspec.field(default_factory=list)
    removed_id: Optional[Any] = None    # For collections: the remove() that triggered it
    source: str = ""


# =============================================================================
# EVENT BUFFER
# =============================================================================

class EventBuffer:
    """
    Ring buffer for recent mutation events.

    O(1) append, O(n) queries.
    """

    def __init__(self, max_size: int = 10000):
        self._buffer: deque[MutationEvent] = deque(maxlen=max_size)
        self._sequence = 0

    def append(self, event: MutationEvent) -> None:
        self._buffer.append(event)

    def get_last(self, n: int) -> List[MutationEvent]:
        """Get the last n events."""
        items = list(self._buffer)
        return items[-n:] if n > 0 else []

    def get_by_publication(self, publication_id: Any) -> List[MutationEvent]:
        return [e for e in self._buffer if e.publication_id == publication_id]

    def get_by_type(self, mutation_type: str) -> List[MutationEvent]:
        return [e for e in self._buffer if e.mutation_type == mutation_type]

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


# =============================================================================
# FILE LOGGER
# =============================================================================

class FileLogger:
    """
    File-based event logger.

    Writes events as newline-delimited JSON. Rotates logs daily.
    """

    def __init__(self, log_path: Path):
        self._log_path = log_path
        self._current_file: Optional[io.TextIOWrapper] = None
        self._current_date: Optional[str] = None
        self._encoder = msgspec.json.Encoder()

        log_path.mkdir(parents=True, exist_ok=True)

    def write(self, event: MutationEvent) -> None:
        """Append one event as a JSON line."""
        self._ensure_file()
        line = self._encoder.encode(event).decode("utf-8") + "\n"
        self._current_file.write(line)
        self._current_file.flush()

    def _ensure_file(self) -> None:
        """Ensure we have a valid file handle for today."""
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")

        if self._current_date != today:
            if self._current_file:
                self._current_file.close()

            filepath = self._log_path / f"mutations_{today}.jsonl"
            self._current_file = open(filepath, "a", encoding="utf-8")
            self._current_date = today

    @property
    def current_path(self) -> Optional[Path]:
        if self._current_date is None:
            return None
        return self._log_path / f"mutations_{self._current_date}.jsonl"

    def close(self) -> None:
        if self._current_file:
            self._current_file.close()
            self._current_file = None
            self._current_date = None


def read_log(filepath: Path) -> List[MutationEvent]:
    """
    Read events back from a JSONL mutation log.

    Raises:
        msgspec.DecodeError: If a line is not a valid MutationEvent
    """
    if not filepath.exists():
        return []

    decoder = msgspec.json.Decoder(type=MutationEvent)
    events = []
    with open(filepath, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                events.append(decoder.decode(line))
    return events


# =============================================================================
# MUTATION LOGGER (Main Interface)
# =============================================================================

class MutationLogger:
    """
    Records graph mutations from an event bus.

    Subscribes to every EventType on construction and unsubscribes on
    close(). Usable as a context manager.
    """

    def __init__(
        self,
        config: Optional[GraphConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config or GraphConfig()
        self._bus = event_bus or get_event_bus()
        self._buffer = EventBuffer(self.config.mutation_log_size)
        self._file_logger: Optional[FileLogger] = None

        if self.config.mutation_log_path is not None:
            self._file_logger = FileLogger(self.config.mutation_log_path)

        self._bus.subscribe_all(self._on_event)

    def _on_event(self, event: GraphEvent) -> None:
        payload = event.payload
        record = MutationEvent(
            timestamp=datetime.fromtimestamp(event.timestamp, timezone.utc).isoformat(),
            sequence=self._buffer.next_sequence(),
            mutation_type=event.type.value,
            publication_id=payload.get("publication_id"),
            parent_ids=list(payload.get("parent_ids", [])),
            removed_id=payload.get("removed_id"),
            source=event.source,
        )
        self._buffer.append(record)

        if self._file_logger:
            self._file_logger.write(record)

    # =========================================================================
    # QUERY METHODS
    # =========================================================================

    def get_recent_events(self, n: int = 100) -> List[MutationEvent]:
        return self._buffer.get_last(n)

    def get_events_for_publication(self, publication_id: Any) -> List[MutationEvent]:
        return self._buffer.get_by_publication(publication_id)

    def get_events_by_type(self, mutation_type: EventType) -> List[MutationEvent]:
        return self._buffer.get_by_type(EventType(mutation_type).value)

    @property
    def log_file(self) -> Optional[Path]:
        """Path of the JSONL file currently being written, if any."""
        return self._file_logger.current_path if self._file_logger else None

    def clear(self) -> None:
        self._buffer.clear()

    def close(self) -> None:
        self._bus.unsubscribe_all(self._on_event)
        if self._file_logger:
            self._file_logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __len__(self) -> int:
        return len(self._buffer)
