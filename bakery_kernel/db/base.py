"""
Declarative base classes for the bakery ORM models.

Architecture position:
    Kernel > DB.  The lowest import target in the kernel: every model
    imports from here, and this module imports nothing from the kernel.

Column conventions:
    - Primary keys are uuid4 values stored as String(36), so the same
      schema runs on SQLite and PostgreSQL.
    - Decimal annotations map to Numeric(38, 9).  Base-unit quantities
      (grams of flour by the tonne) and per-gram costs share one
      precision.  Quantities and costs are never floats.
    - datetime annotations map to timezone-aware DateTime.
    - TrackedBase adds who created and last changed a row, and when.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column stored as its 36-character string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base: uuid4 ``id`` plus the shared type map."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds audit columns.

    ``created_at`` defaults to the database clock; ledger rows override it
    with the injected Clock so tests can order them deterministically.
    ``created_by_id`` is required: every item, adjustment and production
    run has an actor.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
