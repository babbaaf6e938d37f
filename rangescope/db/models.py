"""Database tables for RangeScope persistence.

Topology documents are stored whole, one row per project, as a single JSON
payload so a read always returns one consistent version.
"""

from datetime import datetime, timezone
from typing import Any

from sqlmodel import JSON, Column, Field, SQLModel


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


class TopologyRecord(SQLModel, table=True):
    """The current topology document of one project."""

    __tablename__ = "topology_documents"
    __table_args__ = {"extend_existing": True}

    project_id: str = Field(primary_key=True)
    document: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    version: int = Field(default=1)
    updated_at: datetime = Field(default_factory=utc_now)


class AssetRecord(SQLModel, table=True):
    """A simulated network resource, keyed by project and asset id.

    ``owner_team`` never changes after insert.
    """

    __tablename__ = "assets"
    __table_args__ = {"extend_existing": True}

    project_id: str = Field(primary_key=True)
    asset_id: str = Field(primary_key=True)
    owner_team: str = Field(index=True)  # red / blue / shared
    is_target: bool = Field(default=False)
    node_id: str | None = Field(default=None)
    name: str | None = Field(default=None)
    asset_metadata: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)


class UserRecord(SQLModel, table=True):
    """An exercise participant."""

    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    user_id: str = Field(primary_key=True)
    display_name: str
    role: str = Field(default="none", index=True)  # red / blue / none
    enabled: bool = Field(default=True)
    credential_hash: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
