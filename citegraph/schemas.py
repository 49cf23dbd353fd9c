"""
CITEGRAPH SCHEMAS - The Payload Contract

The graph never accepts a pre-built payload: it builds every publication
from its identity key through a factory (usually just a class). This module
defines:
- PublicationLike: the structural contract any payload type must satisfy
- Publication: the default payload, a msgspec.Struct keyed by `id`
- WeakRef: the generational handle a node keeps for each cited publication

Design Principles:
1. STABLE IDENTITY: the key returned by get_id() never changes
2. CONSTRUCTIBLE FROM KEY: factory(key) is the only way payloads are born
3. msgspec.Struct for the hot-path types (cheap to create, O(1) attribute access)
"""
import msgspec
from typing import Any, Callable, Dict, Hashable, NamedTuple, Protocol, runtime_checkable


@runtime_checkable
class PublicationLike(Protocol):
    """Anything exposing a stable, comparable identity key."""

    def get_id(self) -> Hashable:
        ...


# A factory builds a payload from its key alone.
PublicationFactory = Callable[[Any], PublicationLike]


class Publication(msgspec.Struct):
    """
    Default publication payload.

    Only `id` is required; `metadata` is a free-form extension point
    callers may fill in after lookup().
    """
    id: Any
    metadata: Dict[str, Any] = msgspec.field(default_factory=dict)

    def get_id(self) -> Any:
        return self.id


class WeakRef(NamedTuple):
    """
    Non-owning handle to a node in the arena.

    The arena reuses vacant indices, so the index alone is not enough: the
    serial identifies the node instance that held the slot when the handle
    was taken. A handle whose serial no longer matches has expired.
    """
    index: int
    serial: int
