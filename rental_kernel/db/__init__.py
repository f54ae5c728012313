"""Database infrastructure: declarative base, engine and session management."""

from rental_kernel.db.base import Base, TrackedBase, UUIDString
from rental_kernel.db.engine import (
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
