"""CLI interface for RangeScope.

Provides commands for:
- Starting the HTTP server
- Importing a topology document from JSON
- Showing a stored topology, optionally as one team sees it
"""

import asyncio
import json
import sys
from pathlib import Path

import click
import uvicorn
from pydantic import ValidationError as PydanticValidationError

from rangescope import __version__
from rangescope.assets import AssetDirectory
from rangescope.config import get_settings
from rangescope.db.engine import close_db, init_db
from rangescope.errors import RangeScopeError
from rangescope.logging import configure_logging
from rangescope.roles import resolve_role
from rangescope.schemas import TopologyDocument
from rangescope.store import build_store


def _run(coro):
    try:
        return asyncio.run(coro)
    except RangeScopeError as exc:
        details = getattr(exc, "details", None) or []
        message = "\n".join([str(exc), *(f"  - {d}" for d in details)])
        raise click.ClickException(message) from exc


async def _import_topology(document: TopologyDocument) -> int:
    await init_db()
    try:
        return await build_store().save(document)
    finally:
        await close_db()


async def _show_topology(project_id: str, role: str | None) -> dict | None:
    await init_db()
    try:
        store = build_store()
        if role is None:
            document = await store.load_by_project_id(project_id)
            return document.model_dump(mode="json") if document else None
        view = await AssetDirectory(store).get_visible_topology(project_id, resolve_role(role))
        return view.model_dump(mode="json") if view else None
    finally:
        await close_db()


@click.group()
@click.version_option(version=__version__, prog_name="rangescope")
def cli() -> None:
    """RangeScope - team-scoped topology visibility for cyber ranges."""
    settings = get_settings()
    # stdout carries command output only
    configure_logging(
        json_format=not settings.debug,
        level="DEBUG" if settings.debug else settings.log_level,
        stream=sys.stderr,
    )


@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP server."""
    settings = get_settings()
    uvicorn.run(
        "rangescope.server:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.group()
def topology() -> None:
    """Topology document commands."""
    pass


@topology.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project-id", default=None, help="Override the projectId in the file")
def import_topology(path: Path, project_id: str | None) -> None:
    """Validate and save a topology document from a JSON file."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}") from exc
    if project_id is not None:
        raw["project_id"] = project_id
    try:
        document = TopologyDocument.model_validate(raw)
    except PydanticValidationError as exc:
        raise click.ClickException(f"{path} is not a topology document:\n{exc}") from exc

    version = _run(_import_topology(document))
    click.echo(
        click.style(f"Saved {document.project_id}", fg="green")
        + f" (version {version}, {len(document.nodes)} nodes, {len(document.edges)} edges)"
    )


@topology.command("show")
@click.argument("project_id")
@click.option("--role", default=None, help="Show the view of this team role instead of the raw document")
def show_topology(project_id: str, role: str | None) -> None:
    """Print a stored topology as JSON."""
    result = _run(_show_topology(project_id, role))
    if result is None:
        raise click.ClickException(f"No topology saved for project '{project_id}'")
    click.echo(json.dumps(result, indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
