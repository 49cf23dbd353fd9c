"""
CITEGRAPH - In-process citation graph with reachability-driven collection.

This package provides:
- CitationGraph: the public surface (create / query / remove)
- The error taxonomy (PublicationAlreadyCreated, PublicationNotFound, TriedToRemoveRoot)
- Publication: the default payload type
- Invariant checks over a live graph
"""

from citegraph.citation_graph import CitationGraph
from citegraph.errors import (
    CitationGraphError,
    PublicationAlreadyCreated,
    PublicationNotFound,
    TriedToRemoveRoot,
)
from citegraph.invariants import InvariantReport, InvariantViolation, is_consistent
from citegraph.schemas import Publication, PublicationLike

__all__ = [
    "CitationGraph",
    "CitationGraphError",
    "PublicationAlreadyCreated",
    "PublicationNotFound",
    "TriedToRemoveRoot",
    "InvariantReport",
    "InvariantViolation",
    "is_consistent",
    "Publication",
    "PublicationLike",
]
