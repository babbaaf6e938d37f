"""Request and response bodies of the HTTP adapter."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from rangescope.schemas.roster import UserBasic
from rangescope.schemas.topology import Asset, Edge, Node


class TopologySaveRequest(BaseModel):
    """Body of a topology save; the project id comes from the URL."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    custom_elements: list[dict[str, Any]] = Field(default_factory=list)


class TopologySaveResponse(BaseModel):
    project_id: str
    version: int


class AssetCreateRequest(BaseModel):
    """Body of an asset registration; the project id comes from the URL."""

    asset_id: str = Field(..., min_length=1)
    owner_team: str = Field(..., description="'red', 'blue' or 'shared'")
    is_target: bool = False
    node_id: str | None = None
    name: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AssetListResponse(BaseModel):
    assets: list[Asset]
    count: int


class UserBasicListResponse(BaseModel):
    users: list[UserBasic]
    count: int


class ErrorResponse(BaseModel):
    error: str
    detail: str
    details: list[str] = Field(default_factory=list)
