"""FastAPI adapter over the RangeScope core.

The upstream gateway authenticates callers and forwards the principal id and
team role as headers. Handlers resolve those into a ``Principal``, run the
authorization guard where an operation is team-private, and delegate to the
core services. Domain errors map to HTTP statuses in one place.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import create_async_engine

from rangescope import __version__
from rangescope.assets import AssetDirectory, parse_owner_team
from rangescope.config import Settings, get_settings
from rangescope.db.engine import init_db, make_session_scope
from rangescope.errors import AuthorizationDenied, StoreUnavailable, ValidationError
from rangescope.logging import configure_logging, get_logger
from rangescope.metrics import metrics
from rangescope.middleware import RequestTracingMiddleware
from rangescope.roles import Principal, authorize_asset_registration, authorize_team_member, require
from rangescope.roster import TeamRosterService
from rangescope.schemas import (
    Asset,
    AssetCreateRequest,
    AssetListResponse,
    AssetStats,
    ErrorResponse,
    TeamDashboard,
    TeamMemberStats,
    TopologyDocument,
    TopologySaveRequest,
    TopologySaveResponse,
    User,
    UserBasicListResponse,
    VisibleTopology,
)
from rangescope.store import build_store
from rangescope.visibility import decorate_icons

logger = get_logger(__name__)


def _error(status_code: int, error: str, detail: str, details: list[str] | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, details=details or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


def get_principal(
    principal_id: str | None = Header(default=None, alias="X-Principal-ID"),
    team_role: str | None = Header(default=None, alias="X-Team-Role"),
) -> Principal:
    """Caller identity as forwarded by the auth gateway."""
    if not principal_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Principal-ID header",
        )
    return Principal.from_raw(principal_id, team_role)


def get_assets(request: Request) -> AssetDirectory:
    return request.app.state.assets


def get_roster(request: Request) -> TeamRosterService:
    return request.app.state.roster


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(
            json_format=not settings.debug,
            level="DEBUG" if settings.debug else settings.log_level,
        )
        logger.info(
            "server_starting",
            version=__version__,
            host=settings.host,
            port=settings.port,
            store_backend=settings.store_backend,
        )
        engine = create_async_engine(settings.database_url, echo=settings.debug)
        await init_db(engine)
        session_scope = make_session_scope(engine)
        app.state.store = build_store(settings, session_scope)
        app.state.assets = AssetDirectory(app.state.store, session_scope)
        app.state.roster = TeamRosterService(session_scope)
        logger.info("database_ready", database_url=settings.database_url)
        yield
        await engine.dispose()
        logger.info("server_shutdown")

    app = FastAPI(
        title="RangeScope",
        description="Team-scoped topology and asset visibility for cyber ranges",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(RequestTracingMiddleware)

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, "validation_error", exc.message, exc.details)

    @app.exception_handler(AuthorizationDenied)
    async def on_access_denied(request: Request, exc: AuthorizationDenied) -> JSONResponse:
        return _error(status.HTTP_403_FORBIDDEN, "authorization_denied", exc.decision.reason)

    @app.exception_handler(StoreUnavailable)
    async def on_store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error("store_unavailable", error=exc.message, project_id=exc.project_id)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "store_unavailable", exc.message)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics() -> PlainTextResponse:
        return PlainTextResponse(
            content=metrics.to_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    @app.get("/metrics/json")
    async def get_metrics_json() -> dict:
        return metrics.get_stats()

    # =========================================================================
    # Topology
    # =========================================================================

    @app.post("/v1/topology/{project_id}", response_model=TopologySaveResponse)
    async def save_topology(
        project_id: str,
        body: TopologySaveRequest,
        request: Request,
        principal: Principal = Depends(get_principal),
    ) -> TopologySaveResponse:
        """Replace the whole topology document of a project."""
        require(authorize_team_member(principal), operation="save_topology")
        document = TopologyDocument(
            project_id=project_id,
            nodes=body.nodes,
            edges=body.edges,
            custom_elements=body.custom_elements,
        )
        version = await request.app.state.store.save(document)
        return TopologySaveResponse(project_id=project_id, version=version)

    @app.get("/v1/topology/{project_id}", response_model=TopologyDocument)
    async def load_topology(
        project_id: str,
        principal: Principal = Depends(get_principal),
        assets: AssetDirectory = Depends(get_assets),
    ):
        """The project document with only the nodes and edges the caller's team may see."""
        require(authorize_team_member(principal), operation="load_topology")
        document = await assets.get_visible_document(project_id, principal.role)
        if document is None:
            return _error(
                status.HTTP_404_NOT_FOUND,
                "not_found",
                f"No topology saved for project '{project_id}'",
            )
        return document

    @app.get("/v1/topology/{project_id}/view", response_model=VisibleTopology)
    async def view_topology(
        project_id: str,
        principal: Principal = Depends(get_principal),
        assets: AssetDirectory = Depends(get_assets),
    ):
        """The topology as the caller's team sees it."""
        view = await assets.get_visible_topology(project_id, principal.role)
        if view is None:
            return _error(
                status.HTTP_404_NOT_FOUND,
                "not_found",
                f"No topology saved for project '{project_id}'",
            )
        return view.model_copy(update={"nodes": decorate_icons(view.nodes)})

    # =========================================================================
    # Assets
    # =========================================================================

    @app.post("/v1/projects/{project_id}/assets", response_model=Asset, status_code=201)
    async def register_asset(
        project_id: str,
        body: AssetCreateRequest,
        principal: Principal = Depends(get_principal),
        assets: AssetDirectory = Depends(get_assets),
    ) -> Asset:
        owner_team = parse_owner_team(body.owner_team)
        require(authorize_asset_registration(principal, owner_team), operation="register_asset")
        asset = Asset(
            asset_id=body.asset_id,
            project_id=project_id,
            owner_team=owner_team,
            is_target=body.is_target,
            node_id=body.node_id,
            name=body.name,
            metadata=body.metadata,
        )
        return await assets.register(asset)

    @app.get("/v1/projects/{project_id}/assets", response_model=AssetListResponse)
    async def list_visible_assets(
        project_id: str,
        principal: Principal = Depends(get_principal),
        assets: AssetDirectory = Depends(get_assets),
    ) -> AssetListResponse:
        visible = await assets.get_visible_assets(project_id, principal.role)
        return AssetListResponse(assets=visible, count=len(visible))

    @app.get("/v1/projects/{project_id}/assets/stats", response_model=AssetStats)
    async def asset_stats(
        project_id: str,
        principal: Principal = Depends(get_principal),
        assets: AssetDirectory = Depends(get_assets),
    ) -> AssetStats:
        return await assets.get_stats(project_id, principal.role)

    @app.get("/v1/projects/{project_id}/dashboard", response_model=TeamDashboard)
    async def team_dashboard(
        project_id: str,
        principal: Principal = Depends(get_principal),
        assets: AssetDirectory = Depends(get_assets),
        roster: TeamRosterService = Depends(get_roster),
    ) -> TeamDashboard:
        return await roster.get_team_dashboard(principal, project_id, assets)

    # =========================================================================
    # Team roster
    # =========================================================================

    @app.get("/v1/teams/{role}/users", response_model=list[User])
    async def team_users(
        role: str,
        principal: Principal = Depends(get_principal),
        roster: TeamRosterService = Depends(get_roster),
    ) -> list[User]:
        """Full member records; only for members of that team."""
        return await roster.get_users_by_role(principal, role)

    @app.get("/v1/teams/{role}/stats", response_model=TeamMemberStats)
    async def team_stats(
        role: str,
        principal: Principal = Depends(get_principal),
        roster: TeamRosterService = Depends(get_roster),
    ) -> TeamMemberStats:
        return await roster.get_member_stats(principal, role)

    @app.get("/v1/users/basic", response_model=UserBasicListResponse)
    async def users_basic(
        role: str | None = Query(default=None, description="Filter by team role"),
        principal: Principal = Depends(get_principal),
        roster: TeamRosterService = Depends(get_roster),
    ) -> UserBasicListResponse:
        users = await roster.get_users_basic(role)
        return UserBasicListResponse(users=users, count=len(users))

    return app
