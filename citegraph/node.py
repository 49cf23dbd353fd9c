"""
CITEGRAPH NODE - One Publication in the Arena

Every node lives in a single rustworkx.PyDiGraph (the arena) owned by the
CitationGraph. Ownership is asymmetric:

  Strong references (parent -> child)
  - Arena edges. A node's strong count is its in-degree.
  - A node whose strong count drops to zero is released.

  Weak references (child -> parent)
  - An insertion-ordered list of WeakRef(index, serial) handles.
  - Used for parent traversal and rollback, never for lifetime.
  - Expire silently when the parent is released, even if the arena later
    reuses the slot for another node.

Because the reference bookkeeping only ever owns in one direction, the
arena's edges can never form an ownership cycle by themselves: nodes start
parentless and edges are only installed between already-registered nodes.
"""
import itertools
import logging
from typing import Any, Hashable, List, Optional

import rustworkx as rx

from citegraph.registry import IdentityRegistry
from citegraph.schemas import PublicationLike, WeakRef

logger = logging.getLogger(__name__)

_serials = itertools.count()


class Node:
    """
    One publication: owns its payload, its children (strongly) and a list
    of weak back-references to the publications it cites.

    A node registers itself on construction and deregisters itself exactly
    once, on release(). It is never observable as registered-but-released.
    """

    __slots__ = (
        "publication",
        "key",
        "index",
        "serial",
        "pinned",
        "_arena",
        "_registry",
        "_parents",
        "_alive",
    )

    def __init__(
        self,
        arena: rx.PyDiGraph,
        registry: IdentityRegistry,
        publication: PublicationLike,
    ):
        self.publication = publication
        # Remembered for constant-time deregistration on release.
        self.key: Hashable = publication.get_id()
        self.serial: int = next(_serials)
        # Set by the graph on the root: one strong reference held by the graph itself.
        self.pinned: bool = False
        self._arena = arena
        self._registry = registry
        self._parents: List[WeakRef] = []

        self.index: int = arena.add_node(self)
        try:
            registry.register(self.key, self.index)
        except Exception:
            arena.remove_node(self.index)
            raise
        self._alive = True

    # =========================================================================
    # LIFETIME
    # =========================================================================

    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def strong_count(self) -> int:
        """Number of strong references currently keeping this node alive."""
        if not self._alive:
            return 0
        return self._arena.in_degree(self.index) + (1 if self.pinned else 0)

    def weak(self) -> WeakRef:
        """A new non-owning handle to this node."""
        return WeakRef(self.index, self.serial)

    def release(self) -> List["Node"]:
        """
        Deregister this node and vacate its arena slot.

        Dropping the slot also drops every strong reference this node held
        on its children. Returns those children so the caller can release any
        of them whose strong count reached zero. A second call is a no-op.
        Only deletes, so it cannot fail halfway.
        """
        if not self._alive:
            return []

        children = [self._arena[i] for i in self._arena.successor_indices(self.index)]
        self._registry.deregister(self.key)
        self._arena.remove_node(self.index)
        self._alive = False
        logger.debug(f"Released {self.key!r} ({len(children)} children dropped)")
        return children

    # =========================================================================
    # STRONG CHILD REFERENCES
    # =========================================================================

    def add_child(self, child: "Node") -> None:
        """
        Take a strong reference on `child`.

        Duplicate prevention is the caller's job (see has_child).
        """
        self._arena.add_edge(self.index, child.index, None)

    def remove_child(self, child: "Node") -> None:
        """Drop the strong reference on `child`, if held."""
        if self._arena.has_edge(self.index, child.index):
            self._arena.remove_edge(self.index, child.index)

    def has_child(self, child: "Node") -> bool:
        return self._arena.has_edge(self.index, child.index)

    def children_ids(self) -> List[Any]:
        """Identity keys of all live children, in key order."""
        return sorted(self._arena[i].key for i in self._arena.successor_indices(self.index))

    # =========================================================================
    # WEAK PARENT REFERENCES
    # =========================================================================

    def add_parent(self, ref: WeakRef) -> None:
        self._parents.append(ref)

    def remove_last_parent(self) -> None:
        """Undo the most recent add_parent. No-op when there are no parents."""
        if self._parents:
            self._parents.pop()

    def live_parents(self) -> List["Node"]:
        """Parents still alive, in insertion order. Expired handles are skipped."""
        parents = []
        for ref in self._parents:
            parent = self._resolve(ref)
            if parent is not None:
                parents.append(parent)
        return parents

    def parents_ids(self) -> List[Any]:
        """Identity keys of all still-reachable parents, in insertion order."""
        return [parent.key for parent in self.live_parents()]

    def prune_parents(self) -> int:
        """Drop expired parent handles, keeping order. Returns how many were dropped."""
        live = [ref for ref in self._parents if self._resolve(ref) is not None]
        dropped = len(self._parents) - len(live)
        self._parents = live
        return dropped

    def detach_from_parents(self) -> None:
        """
        Make every live parent drop its strong reference to this node.

        This is what starts a cascading collection: once detached, the node's
        strong count is zero unless it is pinned.
        """
        for parent in self.live_parents():
            parent.remove_child(self)

    def _resolve(self, ref: WeakRef) -> Optional["Node"]:
        try:
            node = self._arena[ref.index]
        except IndexError:
            return None
        if node.serial != ref.serial:
            return None
        return node

    def __repr__(self) -> str:
        state = "live" if self._alive else "released"
        return f"Node(key={self.key!r}, index={self.index}, {state})"
