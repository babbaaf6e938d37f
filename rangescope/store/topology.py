"""Topology store: one whole document per project, last writer wins.

Saves to the same project are serialized by a per-project ``asyncio.Lock``;
saves to different projects never wait on each other. Loads take no lock
because every backend read returns one complete version.

The backend call is the only suspension point. It is bounded by a timeout
and reported as ``StoreUnavailable`` when it expires. Writes run shielded,
so a caller that times out or is cancelled does not interrupt a write that
has started: it still commits or rolls back as a unit.
"""

from __future__ import annotations

import asyncio
import time
import weakref
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from rangescope.errors import StoreUnavailable, ValidationError
from rangescope.logging import get_logger
from rangescope.metrics import record_store_operation
from rangescope.schemas.topology import TopologyDocument
from rangescope.store.backends import DocumentBackend

logger = get_logger(__name__)

BACKEND_ERRORS = (SQLAlchemyError, OSError)


def require_project_id(project_id: str | None) -> str:
    if project_id is None or not str(project_id).strip():
        raise ValidationError("projectId must not be empty")
    return str(project_id)


def validate_document(document: TopologyDocument) -> None:
    """Check the document is self-consistent before it may be stored."""
    require_project_id(document.project_id)
    problems: list[str] = []
    for node_id in document.duplicate_node_ids():
        problems.append(f"duplicate node id '{node_id}'")
    ids = document.node_ids()
    for edge in document.dangling_edges():
        missing = [end for end in (edge.source, edge.target) if end not in ids]
        problems.append(
            f"edge {edge.source}->{edge.target} references unknown node(s): {', '.join(missing)}"
        )
    if problems:
        raise ValidationError(
            f"Topology for project '{document.project_id}' failed validation",
            details=problems,
        )


class TopologyStore:
    """Validating, per-project serialized front for a ``DocumentBackend``."""

    def __init__(self, backend: DocumentBackend, timeout: float | None = None) -> None:
        self._backend = backend
        self._timeout = timeout
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def backend(self) -> DocumentBackend:
        return self._backend

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    def _resolve_timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._timeout

    async def _locked_write(self, project_id: str, payload: dict[str, Any]) -> int:
        lock = self._lock_for(project_id)
        async with lock:
            return await self._backend.put(project_id, payload)

    @staticmethod
    def _observe_write(project_id: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("topology_write_failed", project_id=project_id, error=str(exc))

    async def save(self, document: TopologyDocument, timeout: float | None = None) -> int:
        """Validate and store ``document``, replacing any previous one.

        Returns the new version number of the project's document.
        """
        start = time.perf_counter()
        try:
            validate_document(document)
        except ValidationError as exc:
            record_store_operation("save", "invalid", time.perf_counter() - start)
            logger.info("topology_rejected", project_id=document.project_id, problems=exc.details)
            raise

        project_id = document.project_id
        payload = document.model_dump(mode="json")
        write = asyncio.ensure_future(self._locked_write(project_id, payload))
        write.add_done_callback(lambda task: self._observe_write(project_id, task))
        try:
            version = await asyncio.wait_for(asyncio.shield(write), self._resolve_timeout(timeout))
        except TimeoutError:
            record_store_operation("save", "timeout", time.perf_counter() - start)
            logger.warning("store_timeout", operation="save", project_id=project_id)
            raise StoreUnavailable(
                f"Saving topology '{project_id}' timed out", project_id=project_id
            ) from None
        except BACKEND_ERRORS as exc:
            record_store_operation("save", "error", time.perf_counter() - start)
            raise StoreUnavailable(
                f"Saving topology '{project_id}' failed: {exc}", project_id=project_id
            ) from exc

        record_store_operation("save", "ok", time.perf_counter() - start)
        logger.info(
            "topology_saved",
            project_id=project_id,
            version=version,
            nodes=len(document.nodes),
            edges=len(document.edges),
            custom_elements=len(document.custom_elements),
        )
        return version

    async def _read(self, project_id: str, timeout: float | None):
        start = time.perf_counter()
        try:
            stored = await asyncio.wait_for(
                self._backend.get(project_id), self._resolve_timeout(timeout)
            )
        except TimeoutError:
            record_store_operation("load", "timeout", time.perf_counter() - start)
            logger.warning("store_timeout", operation="load", project_id=project_id)
            raise StoreUnavailable(
                f"Loading topology '{project_id}' timed out", project_id=project_id
            ) from None
        except BACKEND_ERRORS as exc:
            record_store_operation("load", "error", time.perf_counter() - start)
            raise StoreUnavailable(
                f"Loading topology '{project_id}' failed: {exc}", project_id=project_id
            ) from exc
        record_store_operation("load", "ok" if stored else "not_found", time.perf_counter() - start)
        return stored

    async def load_by_project_id(
        self, project_id: str, timeout: float | None = None
    ) -> TopologyDocument | None:
        """Return a copy of the project's document, or None if none was ever saved."""
        project_id = require_project_id(project_id)
        stored = await self._read(project_id, timeout)
        if stored is None:
            logger.info("topology_not_found", project_id=project_id)
            return None
        try:
            return TopologyDocument.model_validate(stored.payload)
        except PydanticValidationError as exc:
            raise StoreUnavailable(
                f"Stored topology '{project_id}' is unreadable", project_id=project_id
            ) from exc

    async def version_of(self, project_id: str, timeout: float | None = None) -> int:
        """Current document version of a project, 0 when absent."""
        project_id = require_project_id(project_id)
        stored = await self._read(project_id, timeout)
        return stored.version if stored else 0
