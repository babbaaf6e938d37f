"""Keyed document backends for the topology store.

A backend only knows how to read and replace one serialized document per
project id. Validation, per-project serialization and timeouts live in
``TopologyStore``; backends must make each ``put`` all-or-nothing and each
``get`` a single consistent read.
"""

from __future__ import annotations

import abc
import copy
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from rangescope.db.engine import SessionScope, get_session
from rangescope.db.models import TopologyRecord, utc_now


@dataclass(slots=True)
class StoredDocument:
    payload: dict[str, Any]
    version: int
    updated_at: datetime


class DocumentBackend(abc.ABC):
    @abc.abstractmethod
    async def get(self, project_id: str) -> StoredDocument | None: ...

    @abc.abstractmethod
    async def put(self, project_id: str, payload: dict[str, Any]) -> int:
        """Replace the document of ``project_id`` and return its new version."""


class InMemoryDocumentBackend(DocumentBackend):
    """Dict-backed backend for tests and local development.

    Each write swaps in a freshly copied ``StoredDocument`` in one assignment,
    so readers see either the previous or the next version.
    """

    def __init__(self) -> None:
        self._data: dict[str, StoredDocument] = {}

    async def get(self, project_id: str) -> StoredDocument | None:
        stored = self._data.get(project_id)
        if stored is None:
            return None
        return StoredDocument(copy.deepcopy(stored.payload), stored.version, stored.updated_at)

    async def put(self, project_id: str, payload: dict[str, Any]) -> int:
        previous = self._data.get(project_id)
        version = previous.version + 1 if previous else 1
        self._data[project_id] = StoredDocument(copy.deepcopy(payload), version, utc_now())
        return version

    def project_ids(self) -> list[str]:
        return sorted(self._data)


class SQLDocumentBackend(DocumentBackend):
    """Durable backend on the ``topology_documents`` table."""

    def __init__(self, session_scope: SessionScope = get_session) -> None:
        self._session_scope = session_scope

    async def get(self, project_id: str) -> StoredDocument | None:
        async with self._session_scope() as session:
            record = await session.get(TopologyRecord, project_id)
            if record is None:
                return None
            return StoredDocument(copy.deepcopy(record.document), record.version, record.updated_at)

    async def put(self, project_id: str, payload: dict[str, Any]) -> int:
        async with self._session_scope() as session:
            record = await session.get(TopologyRecord, project_id)
            if record is None:
                record = TopologyRecord(project_id=project_id, document=payload, version=1)
                session.add(record)
            else:
                record.document = payload
                record.version += 1
                record.updated_at = utc_now()
            version = record.version
        return version
