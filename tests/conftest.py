"""
Pytest configuration and shared fixtures for the citegraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Give each test its own global event bus."""
    from citegraph.infrastructure.event_bus import reset_event_bus

    reset_event_bus()

    yield

    reset_event_bus()


@pytest.fixture
def event_bus():
    """Provide a private EventBus instance."""
    from citegraph.infrastructure.event_bus import EventBus
    return EventBus()


@pytest.fixture
def fresh_graph(event_bus):
    """Provide a graph holding only the root "R"."""
    from citegraph.citation_graph import CitationGraph
    return CitationGraph("R", event_bus=event_bus)


@pytest.fixture
def diamond_graph(fresh_graph):
    """
    Provide the shared-survival diamond:

        R <- A <- C
        R <- B <- C
    """
    fresh_graph.create("A", "R")
    fresh_graph.create("B", "R")
    fresh_graph.create("C", ["A", "B"])
    return fresh_graph


def _snapshot(graph):
    return {
        key: (graph.children_of(key), graph.parents_of(key))
        for key in sorted(graph, key=repr)
    }


@pytest.fixture
def snapshot():
    """Return a function capturing everything observable about a graph."""
    return _snapshot
