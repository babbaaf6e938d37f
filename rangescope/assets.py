"""Asset directory: project assets and their role-filtered views.

Every read that leaves this module goes through the visibility engine
first, and statistics are counted over that filtered list, never over the
raw project inventory.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from rangescope.db.engine import SessionScope, get_session
from rangescope.db.models import AssetRecord
from rangescope.errors import StoreUnavailable, ValidationError
from rangescope.logging import get_logger
from rangescope.metrics import record_visibility_query
from rangescope.roles import resolve_role
from rangescope.schemas.enums import OwnerTeam
from rangescope.schemas.topology import Asset, AssetStats, TopologyDocument, VisibleTopology
from rangescope.store import TopologyStore, require_project_id
from rangescope.visibility import filter_for_role, visible_assets

logger = get_logger(__name__)


def _to_asset(record: AssetRecord) -> Asset:
    return Asset(
        asset_id=record.asset_id,
        project_id=record.project_id,
        owner_team=OwnerTeam(record.owner_team),
        is_target=record.is_target,
        node_id=record.node_id,
        name=record.name,
        metadata=dict(record.asset_metadata or {}),
    )


def _identity(asset: Asset) -> dict[str, str]:
    return {"project_id": asset.project_id, "asset_id": asset.asset_id}


def parse_owner_team(raw: object) -> OwnerTeam:
    value = raw.value if isinstance(raw, OwnerTeam) else str(raw or "").strip().lower()
    try:
        return OwnerTeam(value)
    except ValueError:
        raise ValidationError(
            f"Unknown owner team '{raw}'",
            details=[f"expected one of: {', '.join(t.value for t in OwnerTeam)}"],
        ) from None


class AssetDirectory:
    """Assets indexed by project, with role-filtered queries."""

    def __init__(self, store: TopologyStore, session_scope: SessionScope = get_session) -> None:
        self._store = store
        self._session_scope = session_scope

    @property
    def store(self) -> TopologyStore:
        return self._store

    async def register(self, asset: Asset) -> Asset:
        """Create an asset; its owner team is fixed from here on."""
        require_project_id(asset.project_id)
        if not asset.asset_id.strip():
            raise ValidationError("assetId must not be empty")
        try:
            async with self._session_scope() as session:
                if await session.get(AssetRecord, _identity(asset)) is not None:
                    raise ValidationError(
                        f"Asset '{asset.asset_id}' already exists in project '{asset.project_id}'"
                    )
                session.add(
                    AssetRecord(
                        asset_id=asset.asset_id,
                        project_id=asset.project_id,
                        owner_team=asset.owner_team.value,
                        is_target=asset.is_target,
                        node_id=asset.node_id,
                        name=asset.name,
                        asset_metadata=dict(asset.metadata),
                    )
                )
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Registering asset '{asset.asset_id}' failed: {exc}") from exc
        logger.info(
            "asset_registered",
            asset_id=asset.asset_id,
            project_id=asset.project_id,
            owner_team=asset.owner_team.value,
        )
        return asset

    async def update(self, asset: Asset) -> Asset:
        """Replace the descriptive fields of an existing asset of the same project.

        Ownership transfer is a separate audited operation, so a differing
        ``owner_team`` is rejected here.
        """
        require_project_id(asset.project_id)
        try:
            async with self._session_scope() as session:
                record = await session.get(AssetRecord, _identity(asset))
                if record is None:
                    raise ValidationError(
                        f"Asset '{asset.asset_id}' does not exist in project '{asset.project_id}'"
                    )
                if record.owner_team != asset.owner_team.value:
                    raise ValidationError(
                        f"Owner team of asset '{asset.asset_id}' cannot change",
                        details=[f"stored: {record.owner_team}", f"requested: {asset.owner_team.value}"],
                    )
                record.is_target = asset.is_target
                record.node_id = asset.node_id
                record.name = asset.name
                record.asset_metadata = dict(asset.metadata)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Updating asset '{asset.asset_id}' failed: {exc}") from exc
        logger.info("asset_updated", asset_id=asset.asset_id, project_id=asset.project_id)
        return asset

    async def list_for_project(self, project_id: str) -> list[Asset]:
        """All assets of a project, unfiltered. Not for callers outside the core."""
        project_id = require_project_id(project_id)
        try:
            async with self._session_scope() as session:
                result = await session.execute(
                    select(AssetRecord)
                    .where(AssetRecord.project_id == project_id)
                    .order_by(AssetRecord.asset_id)
                )
                records = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(
                f"Loading assets of '{project_id}' failed: {exc}", project_id=project_id
            ) from exc
        return [_to_asset(record) for record in records]

    async def get_visible_assets(self, project_id: str, role: object) -> list[Asset]:
        """Assets of ``project_id`` visible to ``role``, ascending by asset id."""
        resolved = resolve_role(role)
        assets = visible_assets(await self.list_for_project(project_id), resolved)
        record_visibility_query(resolved.value, "assets")
        return assets

    async def get_stats(self, project_id: str, role: object) -> AssetStats:
        assets = await self.get_visible_assets(project_id, role)
        return AssetStats(
            count=len(assets),
            high_value_target_count=sum(1 for asset in assets if asset.is_target),
        )

    async def get_visible_topology(self, project_id: str, role: object) -> VisibleTopology | None:
        """The project's topology as ``role`` sees it, or None if none is stored."""
        document = await self._store.load_by_project_id(project_id)
        if document is None:
            return None
        resolved = resolve_role(role)
        view = filter_for_role(document, await self.list_for_project(project_id), resolved)
        record_visibility_query(resolved.value, "topology")
        return view

    async def get_visible_document(self, project_id: str, role: object) -> TopologyDocument | None:
        """The project's document reduced to the nodes and edges ``role`` may see."""
        document = await self._store.load_by_project_id(project_id)
        if document is None:
            return None
        resolved = resolve_role(role)
        view = filter_for_role(document, await self.list_for_project(project_id), resolved)
        record_visibility_query(resolved.value, "document")
        return document.model_copy(update={"nodes": view.nodes, "edges": view.edges})
