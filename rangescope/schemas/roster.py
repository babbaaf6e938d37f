"""Participant schemas.

``User`` carries the credential hash and is only handed out on the
privileged own-team path; everything else gets ``UserBasic``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from rangescope.schemas.enums import TeamRole


class User(BaseModel):
    """A participant record, including sensitive fields."""

    user_id: str = Field(..., min_length=1)
    display_name: str
    role: TeamRole = TeamRole.NONE
    enabled: bool = Field(default=True, description="Online/active flag")
    credential_hash: str | None = Field(default=None, description="Never exposed outside the owning team")

    def to_basic(self) -> UserBasic:
        return UserBasic(
            user_id=self.user_id,
            display_name=self.display_name,
            role=self.role,
            enabled=self.enabled,
        )


class UserBasic(BaseModel):
    """Safe projection of a participant for any authenticated caller."""

    user_id: str
    display_name: str
    role: TeamRole
    enabled: bool


class TeamMemberStats(BaseModel):
    team_member_count: int = 0
    online_members: int = 0


class TeamDashboard(BaseModel):
    """Summary of one team's members and visible assets within a project."""

    project_id: str
    role: TeamRole
    team_member_count: int = 0
    online_members: int = 0
    asset_count: int = 0
    high_value_target_count: int = 0
