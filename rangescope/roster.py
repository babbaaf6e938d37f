"""Team roster service.

Two read paths exist:
- the privileged own-team listing, which returns full ``User`` records and
  is only reachable when the caller's role equals the requested team;
- the basic listing, which returns ``UserBasic`` (no credentials) to any
  authenticated caller.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from rangescope.assets import AssetDirectory
from rangescope.db.engine import SessionScope, get_session
from rangescope.db.models import UserRecord
from rangescope.errors import StoreUnavailable, ValidationError
from rangescope.logging import get_logger
from rangescope.roles import Principal, authorize_team_access, parse_role_filter, require, resolve_role
from rangescope.schemas.enums import TeamRole
from rangescope.schemas.roster import TeamDashboard, TeamMemberStats, User, UserBasic

logger = get_logger(__name__)


def _to_user(record: UserRecord) -> User:
    return User(
        user_id=record.user_id,
        display_name=record.display_name,
        role=resolve_role(record.role),
        enabled=record.enabled,
        credential_hash=record.credential_hash,
    )


class TeamRosterService:
    """Role-scoped access to the participant directory."""

    def __init__(self, session_scope: SessionScope = get_session) -> None:
        self._session_scope = session_scope

    async def add_user(self, user: User) -> User:
        try:
            async with self._session_scope() as session:
                if await session.get(UserRecord, user.user_id) is not None:
                    raise ValidationError(f"User '{user.user_id}' already exists")
                session.add(
                    UserRecord(
                        user_id=user.user_id,
                        display_name=user.display_name,
                        role=user.role.value,
                        enabled=user.enabled,
                        credential_hash=user.credential_hash,
                    )
                )
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Adding user '{user.user_id}' failed: {exc}") from exc
        logger.info("user_added", user_id=user.user_id, role=user.role.value)
        return user

    async def _list(self, role: TeamRole | None) -> list[User]:
        try:
            async with self._session_scope() as session:
                query = select(UserRecord).order_by(UserRecord.user_id)
                if role is not None:
                    query = query.where(UserRecord.role == role.value)
                result = await session.execute(query)
                records = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Loading users failed: {exc}") from exc
        return [_to_user(record) for record in records]

    async def get_users_by_role(self, caller: Principal, role: object) -> list[User]:
        """Full member records of the caller's own team."""
        require(authorize_team_access(caller, role), operation="users_by_role")
        return await self._list(resolve_role(role))

    async def get_users_basic(self, role_filter: str | None = None) -> list[UserBasic]:
        """Credential-free projection of all users, optionally filtered by role."""
        role = parse_role_filter(role_filter)
        return [user.to_basic() for user in await self._list(role)]

    async def get_member_stats(self, caller: Principal, role: object) -> TeamMemberStats:
        members = await self.get_users_by_role(caller, role)
        return TeamMemberStats(
            team_member_count=len(members),
            online_members=sum(1 for member in members if member.enabled),
        )

    async def get_team_dashboard(
        self, caller: Principal, project_id: str, assets: AssetDirectory
    ) -> TeamDashboard:
        """Member and asset counts for the caller's own team in one project."""
        members = await self.get_member_stats(caller, caller.role)
        asset_stats = await assets.get_stats(project_id, caller.role)
        return TeamDashboard(
            project_id=project_id,
            role=caller.role,
            team_member_count=members.team_member_count,
            online_members=members.online_members,
            asset_count=asset_stats.count,
            high_value_target_count=asset_stats.high_value_target_count,
        )
