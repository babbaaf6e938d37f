"""Enumerations shared by the RangeScope schemas."""

from __future__ import annotations

from enum import Enum


class TeamRole(str, Enum):
    """Team affiliation of a principal."""

    RED = "red"
    BLUE = "blue"
    NONE = "none"


class OwnerTeam(str, Enum):
    """Team owning an asset or topology node."""

    RED = "red"
    BLUE = "blue"
    SHARED = "shared"


TEAM_ROLES = frozenset({TeamRole.RED, TeamRole.BLUE})
