"""
CITEGRAPH ERRORS - The Error Taxonomy

Every domain failure the citation graph can signal. Each exception carries
the offending publication id, both as an attribute and in its message.

Resource failures (MemoryError and friends) are deliberately NOT part of
this hierarchy: they propagate unchanged, after the graph has rolled back
whatever the failing operation had already installed.
"""
from typing import Any, Optional


class CitationGraphError(Exception):
    """Base exception for citation graph operations."""
    pass


class PublicationAlreadyCreated(CitationGraphError):
    """Raised when create() is called with an id that is already registered."""
    def __init__(self, publication_id: Any):
        self.publication_id = publication_id
        super().__init__(f"Publication already created: {publication_id!r}")


class PublicationNotFound(CitationGraphError):
    """
    Raised when an operation references an id absent from the registry.

    create() with an empty parent list raises it too, with a reason and
    the id of the publication that could not be created.
    """
    def __init__(self, publication_id: Any, reason: Optional[str] = None):
        self.publication_id = publication_id
        self.reason = reason
        if reason is None:
            super().__init__(f"Publication not found: {publication_id!r}")
        else:
            super().__init__(f"{reason}: {publication_id!r}")


class TriedToRemoveRoot(CitationGraphError):
    """Raised when remove() targets the root publication."""
    def __init__(self, publication_id: Any):
        self.publication_id = publication_id
        super().__init__(f"Tried to remove root publication: {publication_id!r}")
