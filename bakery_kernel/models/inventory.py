"""
Inventory items and their adjustment ledger.

InventoryItem holds a *cached* ``current_quantity``; the authoritative
quantity is the sum of the item's Adjustment rows.  Both are written in the
same flush by ``InventoryLedger.record_adjustment`` and nowhere else.

All quantity and level columns are in the item's base unit (g, ml, pcs) and
``cost`` is per base unit.  ``unit`` records the display unit the item was
created with (kg, l, g, ...).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakery_kernel.db.base import Base, TrackedBase, UUIDString


class ItemType(str, Enum):
    RAW_MATERIAL = "raw_material"
    SUPPLIES = "supplies"


class InventoryItem(TrackedBase):
    """
    A stocked raw material or supply.

    Guarantees:
        - (name_key, item_type) is unique; name_key is the trimmed,
          lower-cased name.
        - ``version`` is SQLAlchemy's version counter: every UPDATE checks and
          bumps it, so a concurrent writer holding a stale row fails at flush.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("name_key", "item_type", name="uq_inventory_item_name_type"),
        CheckConstraint("current_quantity >= 0", name="ck_inventory_item_quantity_non_negative"),
        CheckConstraint("min_level >= 0", name="ck_inventory_item_min_non_negative"),
        CheckConstraint("min_level < max_level", name="ck_inventory_item_levels"),
        CheckConstraint("cost >= 0", name="ck_inventory_item_cost_non_negative"),
        Index("idx_inventory_item_type", "item_type"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_key: Mapped[str] = mapped_column(String(200), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Base-unit projection of the ledger
    current_quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )
    min_level: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    max_level: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Cost per base unit
    cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<InventoryItem {self.name} {self.current_quantity} ({self.unit})>"


class Adjustment(Base):
    """
    A signed, attributed, timestamped change to an item's quantity.

    Append-only: any ORM update or delete raises ImmutabilityViolationError
    (see db/immutability.py).  ``seq`` comes from the ``adjustment`` sequence
    and breaks ties between entries sharing a timestamp.
    """

    __tablename__ = "adjustments"

    __table_args__ = (
        Index("idx_adjustment_item_created", "inventory_item_id", "created_at", "seq"),
        Index("idx_adjustment_created_at", "created_at"),
        Index("idx_adjustment_production_run", "production_run_id"),
        UniqueConstraint("seq", name="uq_adjustment_seq"),
    )

    inventory_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    production_run_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("production_runs.id"),
        nullable=True,
    )

    inventory_item: Mapped[InventoryItem] = relationship()

    def __repr__(self) -> str:
        return f"<Adjustment #{self.seq} item={self.inventory_item_id} {self.amount:+}>"
