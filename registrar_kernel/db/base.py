"""
Module: registrar_kernel.db.base
Responsibility: Declarative base classes for every ORM model of the request
    lifecycle engine.  Provides the surrogate integer key convention, the
    type annotation map that fixes column types schema-wide, and the
    TrackedBase mixin for row timestamps.
Architecture position: Kernel > DB.  Lowest-level import target inside the
    kernel.  MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Surrogate integer primary keys on every table.  Natural keys (email,
      student number, request number, reference number) are separate
      UNIQUE columns.
    - Decimal maps to Numeric(10, 2).  Money never travels as float.
    - datetime maps to UTCDateTime: stored and returned in UTC.

Failure modes:
    - IntegrityError when a natural unique key collides.  Identifier
      minting relies on this to detect collisions.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# SQLite only autoincrements a column declared exactly as INTEGER PRIMARY KEY.
SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    Contract:
        Values are converted to UTC on the way in.  On the way out a naive
        value (SQLite keeps no offset) is tagged UTC and an aware value is
        converted to UTC, so both backends return comparable datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all registrar models.

    Contract:
        Every ORM model inherits from Base (or TrackedBase) and receives an
        auto-incrementing integer ``id``.

    Guarantees:
        - Decimal columns are Numeric(10, 2).
        - datetime columns round-trip as UTC-aware values.
        - int columns are BIGINT on PostgreSQL.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(10, 2),
        datetime: UTCDateTime(),
        int: SurrogateKey,
    }

    id: Mapped[int] = mapped_column(
        SurrogateKey,
        primary_key=True,
        autoincrement=True,
    )


class TrackedBase(Base):
    """
    Abstract base adding row timestamps.

    Guarantees:
        - created_at is set by the server on INSERT.
        - updated_at is set on INSERT and refreshed on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
