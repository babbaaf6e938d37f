"""Role resolution and the team authorization guard.

The external auth layer hands us a principal id plus a raw role string.
``resolve_role`` never fails: anything that is not exactly a known team
collapses to ``TeamRole.NONE``, which the visibility engine treats as total
denial. Request filters go through ``parse_role_filter`` instead, which
rejects unknown strings so callers learn about typos.
"""

from __future__ import annotations

from dataclasses import dataclass

from rangescope.errors import AuthorizationDenied, ValidationError
from rangescope.logging import get_logger
from rangescope.metrics import record_access_denied
from rangescope.schemas.enums import TEAM_ROLES, OwnerTeam, TeamRole

logger = get_logger(__name__)


def _normalize(raw: object) -> str:
    if raw is None:
        return ""
    if isinstance(raw, TeamRole):
        return raw.value
    return str(raw).strip().lower()


def resolve_role(raw: object) -> TeamRole:
    """Map a raw role value onto a team role, defaulting to ``NONE``."""
    value = _normalize(raw)
    try:
        return TeamRole(value)
    except ValueError:
        return TeamRole.NONE


def parse_role_filter(raw: str | None) -> TeamRole | None:
    """Parse an optional role filter, rejecting unrecognized values."""
    value = _normalize(raw)
    if not value:
        return None
    try:
        return TeamRole(value)
    except ValueError:
        raise ValidationError(
            f"Unknown role filter '{raw}'",
            details=[f"expected one of: {', '.join(r.value for r in TeamRole)}"],
        ) from None


@dataclass(frozen=True)
class Principal:
    """An authenticated caller as delivered by the auth layer."""

    principal_id: str
    role: TeamRole = TeamRole.NONE

    @classmethod
    def from_raw(cls, principal_id: str, raw_role: object) -> Principal:
        return cls(principal_id=principal_id, role=resolve_role(raw_role))


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    @classmethod
    def allow(cls, reason: str = "allowed") -> AccessDecision:
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str) -> AccessDecision:
        return cls(allowed=False, reason=reason)


def authorize_team_access(principal: Principal, requested_role: object) -> AccessDecision:
    """Decide whether ``principal`` may read team-private data of ``requested_role``.

    Only members of a resolved team may read that same team's data.
    """
    requested = resolve_role(requested_role)
    if principal.role not in TEAM_ROLES:
        return AccessDecision.deny(f"principal '{principal.principal_id}' has no team role")
    if requested not in TEAM_ROLES:
        return AccessDecision.deny(f"'{requested_role}' is not a team")
    if principal.role != requested:
        return AccessDecision.deny(
            f"role '{principal.role.value}' may not access team '{requested.value}'"
        )
    return AccessDecision.allow()


def authorize_team_member(principal: Principal) -> AccessDecision:
    """Allow any member of a resolved team; unaffiliated callers are denied."""
    if principal.role not in TEAM_ROLES:
        return AccessDecision.deny(f"principal '{principal.principal_id}' has no team role")
    return AccessDecision.allow()


def authorize_asset_registration(principal: Principal, owner_team: OwnerTeam) -> AccessDecision:
    """Teams register their own assets; shared assets need any resolved team."""
    if owner_team == OwnerTeam.SHARED:
        return authorize_team_member(principal)
    return authorize_team_access(principal, owner_team.value)


def require(decision: AccessDecision, operation: str = "team_access") -> None:
    """Raise ``AuthorizationDenied`` unless ``decision`` allows the operation."""
    if decision.allowed:
        return
    logger.warning("access_denied", operation=operation, reason=decision.reason)
    record_access_denied(operation)
    raise AuthorizationDenied(decision)
