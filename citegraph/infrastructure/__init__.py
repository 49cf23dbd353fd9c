"""
CITEGRAPH INFRASTRUCTURE - Ambient Modules

- config: GraphConfig and TOML loading
- event_bus: pub/sub for committed graph mutations
- mutation_log: audit trail of published mutations
"""

from citegraph.infrastructure.config import GraphConfig, load_config
from citegraph.infrastructure.event_bus import EventBus, EventType, GraphEvent, get_event_bus
from citegraph.infrastructure.mutation_log import MutationEvent, MutationLogger

__all__ = [
    "GraphConfig",
    "load_config",
    "EventBus",
    "EventType",
    "GraphEvent",
    "get_event_bus",
    "MutationEvent",
    "MutationLogger",
]
