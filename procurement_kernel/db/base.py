"""
Module: procurement_kernel.db.base
Responsibility: Declarative base classes for the purchase order ORM models.
    Provides the UUID primary key convention, portable UUID and UTC datetime
    column types, and the TrackedBase mixin for creator/updater columns.
Architecture position: Kernel > DB.  The lowest-level import target for the
    persistence adapters.  MUST NOT import from models/, services/ or domain/.

Invariants enforced:
    - UUID primary keys: every row gets a uuid4 primary key stored as text.
    - Money is Numeric(38, 9) and maps to Decimal.  NEVER float.
    - Datetimes are written as UTC and always read back timezone-aware,
      including on SQLite, which has no native timezone support.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, MetaData, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# Deterministic constraint names so migrations diff cleanly across backends.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID stored as String(36); returned as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value if isinstance(value, UUID) else UUID(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    Naive values coming back from the database are taken to be UTC, which
    is how they were written.  Naive values going in are rejected: an order
    timestamp without a zone cannot be aged correctly.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for the procurement models.

    Guarantees:
        - ``id`` is a uuid4 primary key.
        - ``Decimal`` annotations map to Numeric(38, 9), ``datetime`` to
          ``UTCDateTime`` and ``UUID`` to ``UUIDString``.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base recording who created and last changed a row, and when.

    ``created_by_id`` is required.  ``updated_by_id`` stays NULL until a
    transition by an identified actor touches the row.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[UUID] = mapped_column(nullable=False)

    updated_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
