"""Database layer - engine, base classes, and column types."""

from marketplace_kernel.db.base import UUID, Base, TimestampedBase, UTCDateTime, UUIDString
from marketplace_kernel.db.engine import create_tables, get_engine, get_session
from marketplace_kernel.db.types import LongText, Money, Name, ShortCode

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "Money",
    "ShortCode",
    "Name",
    "LongText",
]
