"""Database layer - engine, session scope and base classes."""

from membership_kernel.db.base import Base, UTCDateTime, UUIDString
from membership_kernel.db.engine import (
    create_engine_from_url,
    create_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)

__all__ = [
    "create_engine_from_url",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "session_scope",
    "Base",
    "UTCDateTime",
    "UUIDString",
]
