"""Topology and asset schemas.

A topology document is the whole directed graph of one exercise project.
Documents are replaced wholesale on save, so these models carry no
partial-update semantics.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from pydantic import BaseModel, Field

from rangescope.schemas.enums import OwnerTeam, TeamRole


class Node(BaseModel):
    """A device in the topology graph.

    Nodes without an ``owner_team`` are structural (routers, switches, links
    to the outside world) and are visible to every resolved team.
    """

    id: str = Field(..., min_length=1, description="Node identifier, unique within a document")
    name: str | None = Field(default=None, description="Display name")
    type: str | None = Field(default=None, description="Device type, e.g. 'router' or 'server'")
    owner_team: OwnerTeam | None = Field(
        default=None,
        description="Owning team; None marks a structural node",
    )
    icon_name: str | None = Field(default=None, description="Presentation icon name")
    symbol: str | None = Field(default=None, description="Presentation symbol URI")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_structural(self) -> bool:
        return self.owner_team is None


class Edge(BaseModel):
    """A directed link between two nodes of the same document."""

    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    metadata: dict[str, Any] | None = Field(default=None)


class TopologyDocument(BaseModel):
    """The full topology graph for one project."""

    project_id: str = Field(..., description="Exercise project identifier")
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    custom_elements: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Free-form drawing annotations, stored verbatim",
    )

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def duplicate_node_ids(self) -> list[str]:
        counts = Counter(node.id for node in self.nodes)
        return sorted(node_id for node_id, count in counts.items() if count > 1)

    def dangling_edges(self) -> list[Edge]:
        """Edges with at least one endpoint that is not a node of this document."""
        ids = self.node_ids()
        return [edge for edge in self.edges if edge.source not in ids or edge.target not in ids]


class Asset(BaseModel):
    """A simulated network resource inside a project."""

    asset_id: str = Field(..., description="Asset identifier")
    project_id: str = Field(..., description="Project the asset belongs to")
    owner_team: OwnerTeam = Field(..., description="Owning team; immutable once created")
    is_target: bool = Field(default=False, description="High-value target flag")
    node_id: str | None = Field(default=None, description="Topology node hosting the asset")
    name: str | None = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AssetStats(BaseModel):
    """Counts over the role-filtered asset set."""

    count: int = 0
    high_value_target_count: int = 0


class VisibleTopology(BaseModel):
    """The slice of a project one team role may observe."""

    project_id: str
    role: TeamRole
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.nodes or self.edges or self.assets)
