"""Database layer - engine, base classes, types and immutability listeners."""

from registrar_kernel.db.base import Base, TrackedBase, UTCDateTime
from registrar_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from registrar_kernel.db.types import Money, to_money

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "Money",
    "to_money",
    "create_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
