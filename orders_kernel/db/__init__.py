"""Database layer: declarative base, engine and session utilities."""

from orders_kernel.db.base import Base, TrackedBase, UUIDString
from orders_kernel.db.engine import (
    create_tables,
    enable_sqlite_savepoints,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "enable_sqlite_savepoints",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
