"""Team-scoped visibility over a topology document.

Everything here is pure: the same document, assets and role always produce
the same view, and nothing is mutated. Both teams go through the same code
path; behaviour is selected only by the role value.

Rules:
- an asset is visible when its owner is the role's team or ``shared``;
- a node is visible when a visible asset sits on it, when it is structural
  (no owner), or when its own owner passes the asset rule;
- an edge is visible only when both endpoints are visible nodes.

A role that is not a team (``none`` or any unknown string) sees nothing.
"""

from __future__ import annotations

from collections.abc import Iterable

from rangescope.logging import get_logger
from rangescope.roles import resolve_role
from rangescope.schemas.enums import TEAM_ROLES, OwnerTeam, TeamRole
from rangescope.schemas.topology import Asset, Edge, Node, TopologyDocument, VisibleTopology

logger = get_logger(__name__)

# Device type -> icon name, used to fill presentation hints the editor left out.
ICON_MAP: dict[str, str] = {
    "server": "storage_server",
    "firewall": "firewall",
    "dns": "dns",
    "pc": "laptop",
    "router": "main_switch",
    "database": "database",
    "mail": "mail_server",
    "switch_fiber": "fiber_switch",
    "switch_ethernet": "ethernet_switch",
    "web": "webserver",
}
DEFAULT_ICON = "laptop"


def can_see(role: TeamRole, owner: OwnerTeam) -> bool:
    """The visibility rule shared by assets and owned nodes."""
    if role not in TEAM_ROLES:
        return False
    return owner == OwnerTeam.SHARED or owner.value == role.value


def visible_assets(assets: Iterable[Asset], role: object) -> list[Asset]:
    """Assets ``role`` may see, ordered by ascending asset id."""
    resolved = resolve_role(role)
    if resolved not in TEAM_ROLES:
        return []
    selected = [asset for asset in assets if can_see(resolved, asset.owner_team)]
    return [asset.model_copy(deep=True) for asset in sorted(selected, key=lambda a: a.asset_id)]


def _node_visible(node: Node, role: TeamRole, asset_nodes: set[str]) -> bool:
    if node.id in asset_nodes:
        return True
    if node.is_structural:
        return True
    return can_see(role, node.owner_team)


def filter_for_role(
    document: TopologyDocument,
    assets: Iterable[Asset],
    role: object,
) -> VisibleTopology:
    """Compute the nodes, edges and assets of ``document`` visible to ``role``.

    Assets belonging to another project are ignored. Node and edge order
    follows the document; assets are sorted by id.
    """
    resolved = resolve_role(role)
    if resolved not in TEAM_ROLES:
        logger.debug("visibility_denied", project_id=document.project_id, role=str(role))
        return VisibleTopology(project_id=document.project_id, role=TeamRole.NONE)

    project_assets = [asset for asset in assets if asset.project_id == document.project_id]
    shown_assets = visible_assets(project_assets, resolved)
    asset_nodes = {asset.node_id for asset in shown_assets if asset.node_id is not None}

    nodes = [
        node.model_copy(deep=True)
        for node in document.nodes
        if _node_visible(node, resolved, asset_nodes)
    ]
    node_ids = {node.id for node in nodes}
    edges: list[Edge] = [
        edge.model_copy(deep=True)
        for edge in document.edges
        if edge.source in node_ids and edge.target in node_ids
    ]

    logger.debug(
        "visibility_filtered",
        project_id=document.project_id,
        role=resolved.value,
        nodes=len(nodes),
        edges=len(edges),
        assets=len(shown_assets),
    )
    return VisibleTopology(
        project_id=document.project_id,
        role=resolved,
        nodes=nodes,
        edges=edges,
        assets=shown_assets,
    )


def decorate_icons(nodes: Iterable[Node]) -> list[Node]:
    """Return copies of ``nodes`` with default icons for nodes missing one.

    A node keeps its own ``icon_name``/``symbol`` when both are set; nodes
    without a ``type`` are left alone.
    """
    decorated = []
    for node in nodes:
        if (node.icon_name and node.symbol) or not node.type:
            decorated.append(node.model_copy(deep=True))
            continue
        icon = ICON_MAP.get(node.type.lower(), DEFAULT_ICON)
        decorated.append(
            node.model_copy(
                update={"icon_name": icon, "symbol": f"image://icons/{icon}.png"},
                deep=True,
            )
        )
    return decorated
