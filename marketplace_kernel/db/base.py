"""
Declarative base and column conventions shared by every marketplace table.

* Primary keys are uuid4 values kept in a 36-character string column, so
  the same schema works on PostgreSQL and SQLite.
* Money columns are Numeric(38, 9); amounts never pass through float.
* Timestamps are stored in UTC and always come back timezone-aware, even
  from SQLite, which discards tzinfo on write.

Nothing here imports models, services or selectors.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """uuid.UUID in Python, canonical hyphenated text in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(str(value))


class UTCDateTime(TypeDecorator):
    """
    Aware UTC datetimes on every backend.

    Naive values bound to a column are assumed to be UTC already; user
    supplied timestamps are normalized by the scheduling engine before they
    get this far.  Binding anything other than a datetime raises ValueError.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, datetime):
            raise ValueError(f"UTCDateTime column given a {type(value).__name__}")
        as_utc = value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
        # only PostgreSQL stores the offset
        return as_utc if dialect.name == "postgresql" else as_utc.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """
    Adds ``created_at`` / ``updated_at``.

    Services set both from their injected Clock; ``utc_now`` is only the
    fallback for rows written some other way (fixtures, scripts).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)


UUID = PyUUID
