"""
Identity registry: publication key -> arena index.

Entries are non-owning. A key is present iff the node it names is alive;
only node construction (register) and node release (deregister) mutate it.
"""
import logging
from typing import Dict, Hashable, Iterator, Optional

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Authoritative existence check for the citation graph."""

    def __init__(self):
        self._entries: Dict[Hashable, int] = {}

    def exists(self, publication_id: Hashable) -> bool:
        return publication_id in self._entries

    def find(self, publication_id: Hashable) -> Optional[int]:
        """Return the arena index for `publication_id`, or None if absent."""
        return self._entries.get(publication_id)

    def register(self, publication_id: Hashable, index: int) -> None:
        """
        Record a freshly constructed node.

        Raises:
            KeyError: If the key is already registered. The graph checks this
                      before constructing a node, so hitting it means a caller
                      bypassed CitationGraph.
        """
        if publication_id in self._entries:
            raise KeyError(f"Key already registered: {publication_id!r}")
        self._entries[publication_id] = index
        logger.debug(f"Registered {publication_id!r} at index {index}")

    def deregister(self, publication_id: Hashable) -> None:
        """Drop a released node's entry. Absent keys are ignored."""
        if publication_id in self._entries:
            del self._entries[publication_id]
            logger.debug(f"Deregistered {publication_id!r}")

    def __contains__(self, publication_id: Hashable) -> bool:
        return publication_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return f"IdentityRegistry(entries={len(self._entries)})"
