"""
CITEGRAPH CITATION GRAPH - The Public Surface

A single permanent root publication plus an evolving set of publications,
each citing one or more earlier ones. Removing a publication collects every
publication that is no longer reachable from the root, and nothing else.

Architecture (The Arena Pattern):
  Business Layer
  - Publication keys: "R", "A", 42, ...
  - Calls: graph.create("B", ["A"]), graph.remove("A")

  Bridge Layer (This File)
  - IdentityRegistry: key -> arena index
  - Staged validation, then mutation, then unwind on failure

  Arena (rustworkx.PyDiGraph)
  - Node payloads at integer indices
  - Edges parent -> child are the strong references

Guarantees:
- create / add_citation are all-or-nothing: on any failure, including a
  MemoryError in the middle of edge installation, the graph is left exactly
  as it was before the call.
- remove is a worklist sweep over the released subgraph: a node is collected
  exactly when its strong count reaches zero. It only deletes, so it cannot
  fail once started.
- Events are published after a mutation commits, never before.

Thread Safety:
    NOT thread-safe. Use external locking if needed for concurrent access.
"""
import logging
import time
from typing import Any, Dict, Hashable, Iterator, List, Optional, Sequence, Union

import rustworkx as rx

from citegraph.errors import PublicationAlreadyCreated, PublicationNotFound, TriedToRemoveRoot
from citegraph.infrastructure.config import GraphConfig, apply_logging
from citegraph.infrastructure.event_bus import EventBus, EventType, GraphEvent, get_event_bus
from citegraph.invariants import InvariantReport, validate_graph
from citegraph.node import Node
from citegraph.registry import IdentityRegistry
from citegraph.schemas import Publication, PublicationFactory, PublicationLike

logger = logging.getLogger(__name__)


class CitationGraph:
    """
    In-memory citation graph rooted at one permanent publication.

    Usage:
        graph = CitationGraph("R")
        graph.create("A", "R")
        graph.create("B", ["R"])
        graph.create("C", ["A", "B"])

        graph.children_of("R")   # ["A", "B"]
        graph.parents_of("C")    # ["A", "B"]

        graph.remove("A")        # C survives through B
        graph.remove("B")        # C is collected too

    Any payload type works as long as it exposes get_id() and can be built
    from its key alone; pass the class (or any callable) as
    `publication_factory`.
    """

    def __init__(
        self,
        root_id: Hashable,
        publication_factory: PublicationFactory = Publication,
        config: Optional[GraphConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Build the registry, the arena and the root.

        Args:
            root_id: Key of the permanent root publication
            publication_factory: Builds a payload from a key
            config: GraphConfig; defaults are used when None
            event_bus: Bus to publish on; the global bus when None.
                       Ignored if config.publish_events is False.
        """
        self.config = config or GraphConfig()
        apply_logging(self.config)

        self._factory = publication_factory
        self._arena: rx.PyDiGraph = rx.PyDiGraph(multigraph=False)
        self._registry = IdentityRegistry()

        self._root = Node(self._arena, self._registry, self._build_publication(root_id))
        self._root.pinned = True

        self._event_bus: Optional[EventBus] = None
        if self.config.publish_events:
            self._event_bus = event_bus or get_event_bus()

        logger.debug(f"Created citation graph rooted at {root_id!r}")

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def root_id(self) -> Any:
        """Key of the root publication."""
        return self._root.key

    @property
    def node_count(self) -> int:
        """Number of live publications, root included."""
        return self._arena.num_nodes()

    @property
    def edge_count(self) -> int:
        """Number of citation edges."""
        return self._arena.num_edges()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def exists(self, publication_id: Hashable) -> bool:
        """Check if a publication is live."""
        return self._registry.exists(publication_id)

    def lookup(self, publication_id: Hashable) -> PublicationLike:
        """
        Return the payload of a live publication.

        Raises:
            PublicationNotFound: If the publication doesn't exist
        """
        return self._get(publication_id).publication

    def children_of(self, publication_id: Hashable) -> List[Any]:
        """
        Keys of the publications citing `publication_id`, in key order.

        Raises:
            PublicationNotFound: If the publication doesn't exist
        """
        return self._get(publication_id).children_ids()

    def parents_of(self, publication_id: Hashable) -> List[Any]:
        """
        Keys of the publications cited by `publication_id`, in the order the
        citations were installed.

        Raises:
            PublicationNotFound: If the publication doesn't exist
        """
        return self._get(publication_id).parents_ids()

    def has_citation(self, child_id: Hashable, parent_id: Hashable) -> bool:
        """
        Check whether `child_id` cites `parent_id`.

        Raises:
            PublicationNotFound: If either publication doesn't exist
        """
        child = self._get(child_id)
        parent = self._get(parent_id)
        return parent.has_child(child)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_citation(self, child_id: Hashable, parent_id: Hashable) -> None:
        """
        Record that `child_id` cites `parent_id`.

        Idempotent: an existing citation is left as is.

        Raises:
            PublicationNotFound: If either publication doesn't exist
        """
        child = self._get(child_id)
        parent = self._get(parent_id)

        if self._link(child, parent):
            logger.debug(f"Citation {child_id!r} -> {parent_id!r}")
            self._publish(EventType.CITATION_ADDED, {
                "publication_id": child_id,
                "parent_ids": [parent_id],
            })

    def create(
        self,
        publication_id: Hashable,
        parent_ids: Union[Hashable, Sequence[Hashable]],
    ) -> None:
        """
        Create a publication citing one or more existing publications.

        Args:
            publication_id: Key of the new publication
            parent_ids: A single parent key, or a list/tuple of them.
                        A tuple that is itself a live key is a single
                        parent. Repeated keys are treated as one citation.

        Raises:
            PublicationAlreadyCreated: If `publication_id` is already live
            PublicationNotFound: If `parent_ids` is empty or names a
                                 publication that doesn't exist

        Nothing is mutated until every check has passed. If installing a
        citation fails, every citation installed for the new publication is
        removed and the publication is released before the error propagates.
        """
        if isinstance(parent_ids, list):
            parent_ids = list(parent_ids)
        elif isinstance(parent_ids, tuple) and not self._registry.exists(parent_ids):
            parent_ids = list(parent_ids)
        else:
            parent_ids = [parent_ids]

        if self._registry.exists(publication_id):
            raise PublicationAlreadyCreated(publication_id)
        if not parent_ids:
            raise PublicationNotFound(publication_id, "No parent publications given")
        parents = [self._get(parent_id) for parent_id in parent_ids]

        publication = self._build_publication(publication_id)
        node = Node(self._arena, self._registry, publication)
        try:
            for parent in parents:
                self._link(node, parent)
        except Exception:
            self._unwind(node)
            raise

        logger.debug(f"Created {publication_id!r} citing {parent_ids!r}")
        self._publish(EventType.PUBLICATION_CREATED, {
            "publication_id": publication_id,
            "parent_ids": node.parents_ids(),
        })

    def remove(self, publication_id: Hashable) -> List[Any]:
        """
        Retire a publication.

        The publication is detached from everything it cites; it and every
        publication left with no path from the root are collected. Anything
        still reachable through another citation survives.

        Returns:
            Keys of the collected publications, `publication_id` first

        Raises:
            PublicationNotFound: If the publication doesn't exist
            TriedToRemoveRoot: If `publication_id` is the root
        """
        node = self._get(publication_id)
        if node is self._root:
            raise TriedToRemoveRoot(publication_id)

        node.detach_from_parents()
        collected = self._collect(node)

        logger.info(f"Removed {publication_id!r}, collected {len(collected)} publication(s)")
        self._publish(EventType.PUBLICATION_REMOVED, {
            "publication_id": publication_id,
        })
        for key in collected[1:]:
            self._publish(EventType.PUBLICATION_COLLECTED, {
                "publication_id": key,
                "removed_id": publication_id,
            })
        return collected

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self) -> InvariantReport:
        """Check the structural invariants of the live graph."""
        return validate_graph(self._arena, self._registry, self._root)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _get(self, publication_id: Hashable) -> Node:
        index = self._registry.find(publication_id)
        if index is None:
            raise PublicationNotFound(publication_id)
        return self._arena[index]

    def _build_publication(self, publication_id: Hashable) -> PublicationLike:
        publication = self._factory(publication_id)
        if publication.get_id() != publication_id:
            raise ValueError(
                f"Publication ID mismatch: {publication_id!r} vs {publication.get_id()!r}"
            )
        return publication

    def _link(self, child: Node, parent: Node) -> bool:
        """
        Install child -> parent. Returns False if it was already there.

        The weak reference goes in first; if taking the strong reference
        fails, the weak one is popped again before the error propagates.
        """
        if parent.has_child(child):
            return False

        child.add_parent(parent.weak())
        try:
            parent.add_child(child)
        except Exception:
            child.remove_last_parent()
            raise
        return True

    def _unwind(self, node: Node) -> None:
        """Undo a partially built create(): drop every edge, then the node."""
        node.detach_from_parents()
        node.release()
        logger.debug(f"Rolled back creation of {node.key!r}")

    def _collect(self, start: Node) -> List[Any]:
        """
        Release `start` and every node whose strong count drops to zero with it.

        Children that survive lose their handle to the released parent, so a
        node's parent list stays bounded by its current number of parents.
        """
        collected: List[Any] = []
        worklist = [start]
        while worklist:
            node = worklist.pop()
            if not node.is_alive or node.strong_count > 0:
                continue
            children = node.release()
            collected.append(node.key)
            for child in children:
                if child.strong_count == 0:
                    worklist.append(child)
                else:
                    child.prune_parents()
        return collected

    def _publish(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(GraphEvent(
            type=event_type,
            payload=payload,
            timestamp=time.time(),
            source=self.config.event_source,
        ))

    # =========================================================================
    # DUNDER METHODS
    # =========================================================================

    def __getitem__(self, publication_id: Hashable) -> PublicationLike:
        return self.lookup(publication_id)

    def __contains__(self, publication_id: Hashable) -> bool:
        return self.exists(publication_id)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._registry)

    def __len__(self) -> int:
        return self.node_count

    def __repr__(self) -> str:
        return (
            f"CitationGraph(root={self.root_id!r}, "
            f"publications={self.node_count}, citations={self.edge_count})"
        )
