"""
CITEGRAPH INVARIANTS - Structural Checks over the Arena

The graph maintains these invariants by construction; this module verifies
them after the fact, for tests and for callers who want to assert on a
live graph.

Invariants Implemented:
1. Registry Agreement: the registry and the arena hold exactly the same nodes
2. Root Reachability: every live node is reachable from the root along
   strong (parent -> child) edges
3. Strong Acyclicity: the strong edges form a DAG
4. Parent Agreement: each node's live weak parent references name exactly
   the nodes holding strong references on it

All checks are O(V+E) using rustworkx primitives.
"""
import rustworkx as rx
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from citegraph.registry import IdentityRegistry


# =============================================================================
# INVARIANT RESULTS
# =============================================================================

@dataclass
class InvariantViolation:
    """A specific invariant violation."""
    invariant: str
    message: str
    publications_involved: List[Any] = field(default_factory=list)


@dataclass
class InvariantReport:
    """Complete invariant validation report."""
    valid: bool
    violations: List[InvariantViolation]
    metrics: Dict[str, Any]

    def by_invariant(self, name: str) -> List[InvariantViolation]:
        return [v for v in self.violations if v.invariant == name]


# =============================================================================
# GRAPH INVARIANTS
# =============================================================================

class GraphInvariants:
    """
    Validators over a citation graph's arena.

    All methods are static. Each returns (is_valid, violation or None).
    """

    @staticmethod
    def validate_registry_agreement(
        arena: rx.PyDiGraph,
        registry: IdentityRegistry,
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """Every registry entry points at a live node with the same key, and vice versa."""
        mismatched = []
        for key in registry:
            index = registry.find(key)
            try:
                node = arena[index]
            except IndexError:
                mismatched.append(key)
                continue
            if node.key != key or not node.is_alive:
                mismatched.append(key)

        unregistered = [
            arena[idx].key for idx in arena.node_indices()
            if registry.find(arena[idx].key) != idx
        ]

        if mismatched or unregistered:
            return False, InvariantViolation(
                invariant="registry_agreement",
                message=(
                    f"{len(mismatched)} stale registry entries, "
                    f"{len(unregistered)} unregistered nodes"
                ),
                publications_involved=mismatched + unregistered,
            )
        return True, None

    @staticmethod
    def validate_root_reachability(
        arena: rx.PyDiGraph,
        root_index: int,
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """No live node may be unreachable from the root."""
        reachable = set(rx.descendants(arena, root_index))
        reachable.add(root_index)

        orphans = [arena[idx].key for idx in arena.node_indices() if idx not in reachable]
        if orphans:
            return False, InvariantViolation(
                invariant="root_reachability",
                message=f"{len(orphans)} publications unreachable from the root",
                publications_involved=orphans,
            )
        return True, None

    @staticmethod
    def validate_strong_acyclicity(
        arena: rx.PyDiGraph,
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """Strong edges must form a DAG."""
        if rx.is_directed_acyclic_graph(arena):
            return True, None

        cycle_keys = []
        for idx in arena.node_indices():
            cycle = rx.digraph_find_cycle(arena, idx)
            if cycle:
                cycle_keys = [arena[source].key for source, _ in cycle]
                break

        return False, InvariantViolation(
            invariant="strong_acyclicity",
            message="Strong citation edges contain a cycle",
            publications_involved=cycle_keys,
        )

    @staticmethod
    def validate_parent_agreement(
        arena: rx.PyDiGraph,
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """Weak parent references and incoming strong edges describe the same parents."""
        disagreeing = []
        for idx in arena.node_indices():
            node = arena[idx]
            weak_parents = {parent.index for parent in node.live_parents()}
            strong_parents = set(arena.predecessor_indices(idx))
            if weak_parents != strong_parents:
                disagreeing.append(node.key)

        if disagreeing:
            return False, InvariantViolation(
                invariant="parent_agreement",
                message=f"{len(disagreeing)} publications with inconsistent parent lists",
                publications_involved=disagreeing,
            )
        return True, None

    @staticmethod
    def validate_all(
        arena: rx.PyDiGraph,
        registry: IdentityRegistry,
        root: Any,
    ) -> InvariantReport:
        """Run every check and collect the results."""
        checks = [
            GraphInvariants.validate_registry_agreement(arena, registry),
            GraphInvariants.validate_root_reachability(arena, root.index),
            GraphInvariants.validate_strong_acyclicity(arena),
            GraphInvariants.validate_parent_agreement(arena),
        ]
        violations = [violation for valid, violation in checks if not valid]

        return InvariantReport(
            valid=not violations,
            violations=violations,
            metrics={
                "node_count": arena.num_nodes(),
                "edge_count": arena.num_edges(),
                "registered": len(registry),
                "leaf_count": sum(1 for idx in arena.node_indices() if arena.out_degree(idx) == 0),
            },
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def validate_graph(arena: rx.PyDiGraph, registry: IdentityRegistry, root: Any) -> InvariantReport:
    """Convenience function to validate a graph's internals."""
    return GraphInvariants.validate_all(arena, registry, root)


def is_consistent(graph) -> bool:
    """Quick check that a CitationGraph satisfies every invariant."""
    return graph.validate().valid
