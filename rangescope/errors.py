"""Error taxonomy shared by every RangeScope component.

A missing topology is not an error: stores return ``None`` for it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rangescope.roles import AccessDecision


class RangeScopeError(Exception):
    """Base class for all RangeScope errors."""


class ValidationError(RangeScopeError):
    """Malformed input, unknown role string or broken topology references.

    Reported to the caller as-is and never retried.
    """

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class StoreUnavailable(RangeScopeError):
    """The persistence backend timed out or failed transiently.

    Safe for the caller to retry with backoff.
    """

    def __init__(self, message: str, project_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.project_id = project_id


class AuthorizationDenied(RangeScopeError):
    """The authorization guard refused a team-scoped operation."""

    def __init__(self, decision: AccessDecision) -> None:
        super().__init__(decision.reason)
        self.decision = decision
