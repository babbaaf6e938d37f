"""Database module for RangeScope persistence."""

from rangescope.db.engine import close_db, get_engine, get_session, init_db, make_session_scope
from rangescope.db.models import AssetRecord, TopologyRecord, UserRecord

__all__ = [
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
    "make_session_scope",
    "AssetRecord",
    "TopologyRecord",
    "UserRecord",
]
