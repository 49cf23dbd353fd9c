"""
Unit tests for citegraph/node.py - Node

Tests the asymmetric ownership bookkeeping:
- Registration on construction, deregistration on release
- Strong child references (arena edges) and strong counts
- Weak parent references, expiry and slot reuse
- Rollback helpers
"""
import pytest
import rustworkx as rx

from citegraph.node import Node
from citegraph.registry import IdentityRegistry
from citegraph.schemas import Publication, WeakRef


@pytest.fixture
def arena():
    return rx.PyDiGraph(multigraph=False)


@pytest.fixture
def registry():
    return IdentityRegistry()


@pytest.fixture
def make_node(arena, registry):
    def _make(key):
        return Node(arena, registry, Publication(key))
    return _make


# =============================================================================
# LIFETIME TESTS
# =============================================================================

def test_node_registers_on_construction(make_node, registry, arena):
    """
    Validate that a node is registered the moment it exists.

    Verifies:
    - The registry maps the key to the node's arena index
    - The arena holds the node at that index
    """
    node = make_node("A")

    assert node.is_alive
    assert registry.find("A") == node.index
    assert arena[node.index] is node


def test_duplicate_key_construction_leaves_arena_clean(make_node, registry, arena):
    """
    Validate that a node whose key is taken never enters the arena.

    Verifies:
    - KeyError from the registry propagates
    - The arena node count is unchanged
    """
    make_node("A")

    with pytest.raises(KeyError):
        make_node("A")

    assert arena.num_nodes() == 1
    assert len(registry) == 1


def test_release_deregisters_once(make_node, registry, arena):
    """
    Validate that release() deregisters and vacates the slot exactly once.

    Verifies:
    - The key is gone from the registry
    - The arena no longer holds the node
    - A second release() is a no-op
    """
    node = make_node("A")

    assert node.release() == []
    assert not node.is_alive
    assert not registry.exists("A")
    assert arena.num_nodes() == 0

    assert node.release() == []
    assert node.strong_count == 0


def test_release_returns_dropped_children(make_node):
    """Validate that release() hands back the children it stopped owning."""
    parent = make_node("P")
    first = make_node("C1")
    second = make_node("C2")
    parent.add_child(first)
    parent.add_child(second)

    children = parent.release()

    assert sorted(child.key for child in children) == ["C1", "C2"]
    assert first.strong_count == 0
    assert second.strong_count == 0


def test_pinned_node_counts_graph_reference(make_node):
    """Validate that a pinned node keeps a strong count of at least one."""
    root = make_node("R")
    root.pinned = True

    assert root.strong_count == 1


# =============================================================================
# STRONG REFERENCE TESTS
# =============================================================================

def test_add_child_raises_strong_count(make_node):
    """
    Validate that each parent's strong reference counts once.

    Verifies:
    - strong_count equals the number of parents holding the child
    - remove_child() drops the count again
    """
    first = make_node("P1")
    second = make_node("P2")
    child = make_node("C")

    first.add_child(child)
    second.add_child(child)
    assert child.strong_count == 2

    first.remove_child(child)
    assert child.strong_count == 1
    assert not first.has_child(child)
    assert second.has_child(child)


def test_remove_child_absent_is_noop(make_node):
    parent = make_node("P")
    child = make_node("C")

    parent.remove_child(child)

    assert child.strong_count == 0


def test_children_ids_sorted_by_key(make_node):
    parent = make_node("P")
    for key in ["c", "a", "b"]:
        parent.add_child(make_node(key))

    assert parent.children_ids() == ["a", "b", "c"]


# =============================================================================
# WEAK REFERENCE TESTS
# =============================================================================

def test_parents_ids_in_insertion_order(make_node):
    child = make_node("C")
    for key in ["z", "a", "m"]:
        child.add_parent(make_node(key).weak())

    assert child.parents_ids() == ["z", "a", "m"]


def test_weak_parent_expires_on_release(make_node):
    """
    Validate that a released parent silently disappears from parents_ids().

    Verifies:
    - The surviving parent is still listed
    - The released parent is skipped, not an error
    """
    first = make_node("P1")
    second = make_node("P2")
    child = make_node("C")
    child.add_parent(first.weak())
    child.add_parent(second.weak())

    first.release()

    assert child.parents_ids() == ["P2"]


def test_prune_parents_drops_only_expired_handles(make_node):
    """
    Validate that prune_parents() forgets released parents and keeps the rest.

    Verifies:
    - The returned count is the number of expired handles
    - Surviving handles keep their insertion order
    """
    first = make_node("P1")
    second = make_node("P2")
    third = make_node("P3")
    child = make_node("C")
    for parent in (first, second, third):
        child.add_parent(parent.weak())

    first.release()
    third.release()

    assert child.prune_parents() == 2
    assert child.parents_ids() == ["P2"]
    assert child.prune_parents() == 0


def test_weak_parent_does_not_follow_slot_reuse(make_node, arena):
    """
    Validate that a weak reference does not resolve to a node reusing its slot.

    The handle pairs the newcomer's index with the released parent's
    serial, which is exactly what a stale handle looks like after reuse.
    """
    parent = make_node("P")
    child = make_node("C")
    parent.release()
    newcomer = make_node("N")

    child.add_parent(WeakRef(index=newcomer.index, serial=parent.serial))

    assert child.parents_ids() == []
    assert newcomer.is_alive


def test_weak_ref_to_unknown_index_is_expired(make_node):
    child = make_node("C")
    child.add_parent(WeakRef(index=999, serial=0))

    assert child.parents_ids() == []


def test_remove_last_parent_undoes_add_parent(make_node):
    """
    Validate that remove_last_parent() is the exact inverse of add_parent().

    Verifies:
    - Only the most recent reference is dropped
    - Calling it on an empty list is a no-op
    """
    child = make_node("C")
    child.add_parent(make_node("P1").weak())
    child.add_parent(make_node("P2").weak())

    child.remove_last_parent()
    assert child.parents_ids() == ["P1"]

    child.remove_last_parent()
    child.remove_last_parent()
    assert child.parents_ids() == []


def test_detach_from_parents_drops_strong_references(make_node):
    """
    Validate that detach_from_parents() empties the node's strong count.

    Verifies:
    - No parent holds the node afterwards
    - Unrelated children of those parents are untouched
    """
    first = make_node("P1")
    second = make_node("P2")
    child = make_node("C")
    sibling = make_node("S")
    for parent in (first, second):
        parent.add_child(child)
        child.add_parent(parent.weak())
    first.add_child(sibling)

    child.detach_from_parents()

    assert child.strong_count == 0
    assert first.children_ids() == ["S"]
    assert second.children_ids() == []
    assert sibling.strong_count == 1


def test_repr_reflects_state(make_node):
    node = make_node("A")
    assert "live" in repr(node)
    node.release()
    assert "released" in repr(node)
