"""Database layer - engine, base classes and column types."""

from contract_kernel.db.base import UUID, Base, TimestampedBase, UTCDateTime, UUIDString
from contract_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "build_engine",
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "drop_tables",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
