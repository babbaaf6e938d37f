"""Topology document storage."""

from rangescope.config import Settings, get_settings
from rangescope.db.engine import SessionScope, get_session
from rangescope.store.backends import (
    DocumentBackend,
    InMemoryDocumentBackend,
    SQLDocumentBackend,
    StoredDocument,
)
from rangescope.store.topology import TopologyStore, require_project_id, validate_document


def build_store(
    settings: Settings | None = None,
    session_scope: SessionScope = get_session,
) -> TopologyStore:
    """Create the topology store selected by ``store_backend``."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        backend: DocumentBackend = InMemoryDocumentBackend()
    else:
        backend = SQLDocumentBackend(session_scope)
    return TopologyStore(backend, timeout=settings.store_timeout_seconds)


__all__ = [
    "DocumentBackend",
    "InMemoryDocumentBackend",
    "SQLDocumentBackend",
    "StoredDocument",
    "TopologyStore",
    "build_store",
    "require_project_id",
    "validate_document",
]
