"""RangeScope schemas."""

from rangescope.schemas.api import (
    AssetCreateRequest,
    AssetListResponse,
    ErrorResponse,
    TopologySaveRequest,
    TopologySaveResponse,
    UserBasicListResponse,
)
from rangescope.schemas.enums import TEAM_ROLES, OwnerTeam, TeamRole
from rangescope.schemas.roster import TeamDashboard, TeamMemberStats, User, UserBasic
from rangescope.schemas.topology import (
    Asset,
    AssetStats,
    Edge,
    Node,
    TopologyDocument,
    VisibleTopology,
)

__all__ = [
    "TEAM_ROLES",
    "Asset",
    "AssetCreateRequest",
    "AssetListResponse",
    "AssetStats",
    "Edge",
    "ErrorResponse",
    "Node",
    "OwnerTeam",
    "TeamDashboard",
    "TeamMemberStats",
    "TeamRole",
    "TopologyDocument",
    "TopologySaveRequest",
    "TopologySaveResponse",
    "User",
    "UserBasic",
    "UserBasicListResponse",
    "VisibleTopology",
]
