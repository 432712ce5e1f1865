"""Database layer - engine, base classes, types, and immutability."""

from fund_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from fund_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from fund_kernel.db.types import MoneyAmount

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "MoneyAmount",
]
