"""Database layer - engine, base classes, types, and append-only enforcement."""

from dealflow_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from dealflow_kernel.db.engine import create_tables, get_engine, get_session
from dealflow_kernel.db.types import Money, Percent, round_money, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUID",
    "UUIDString",
    "UTCDateTime",
    "Money",
    "Percent",
    "round_money",
    "to_decimal",
]
