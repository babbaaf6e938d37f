"""Shared test fixtures for pytest."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from rangescope.config import Settings
from rangescope.db.engine import init_db, make_session_scope
from rangescope.schemas import Asset, Edge, Node, OwnerTeam, TopologyDocument
from rangescope.store import InMemoryDocumentBackend, TopologyStore


@pytest.fixture
def ex1_document() -> TopologyDocument:
    """Project ex-1: a shared core node linking one red and one blue node."""
    return TopologyDocument(
        project_id="ex-1",
        nodes=[
            Node(id="n1", name="core", type="router", owner_team=OwnerTeam.SHARED),
            Node(id="n2", name="kali", type="pc", owner_team=OwnerTeam.RED),
            Node(id="n3", name="soc", type="server", owner_team=OwnerTeam.BLUE),
        ],
        edges=[Edge(source="n1", target="n2"), Edge(source="n1", target="n3")],
    )


@pytest.fixture
def ex1_assets() -> list[Asset]:
    return [
        Asset(asset_id="a1", project_id="ex-1", owner_team=OwnerTeam.RED, is_target=True, node_id="n2"),
        Asset(asset_id="a2", project_id="ex-1", owner_team=OwnerTeam.BLUE, is_target=False, node_id="n3"),
    ]


@pytest.fixture
def memory_store() -> TopologyStore:
    return TopologyStore(InMemoryDocumentBackend(), timeout=2.0)


@pytest_asyncio.fixture
async def session_scope():
    """Transactional session scope over a fresh in-memory database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_db(engine)
    yield make_session_scope(engine)
    await engine.dispose()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        store_backend="sql",
        store_timeout_seconds=2.0,
        log_level="WARNING",
        _env_file=None,
    )


@pytest.fixture
def client(test_settings):
    """Test client for the server with an isolated in-memory database."""
    from fastapi.testclient import TestClient

    from rangescope.server import create_app

    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client
