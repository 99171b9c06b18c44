"""
Products, their recipes, and production runs.

A ProductRecipe line gives the amount of one inventory item (base unit)
consumed by ONE batch of the product.  A ProductionRun is the historical
record of a committed run: its ``cost`` and ``ingredients_deducted`` are a
snapshot taken at commit time and are never recomputed.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
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
from bakery_kernel.models.inventory import InventoryItem


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Product(TrackedBase):
    """A sellable product made in batches of ``batch_size`` units."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("name", name="uq_product_name"),
        CheckConstraint("batch_size > 0", name="ck_product_batch_size_positive"),
        CheckConstraint("selling_price >= 0", name="ck_product_price_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    batch_size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProductStatus.ACTIVE.value,
    )

    recipe: Mapped[list["ProductRecipe"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductRecipe.id",
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} batch={self.batch_size}>"


class ProductRecipe(Base):
    """One ingredient line of a product's bill of materials."""

    __tablename__ = "product_recipes"

    __table_args__ = (
        UniqueConstraint("product_id", "inventory_item_id", name="uq_recipe_product_item"),
        CheckConstraint("amount_required > 0", name="ck_recipe_amount_positive"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    inventory_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    # Per batch, in the item's base unit
    amount_required: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    product: Mapped[Product] = relationship(back_populates="recipe")
    inventory_item: Mapped[InventoryItem] = relationship()


class ProductionRun(TrackedBase):
    """
    A committed production run.

    Guarantees:
        - ``quantity_produced`` is a positive multiple of the product's
          batch size at commit time.
        - Only the reversal columns may change after insert
          (see db/immutability.py).
    """

    __tablename__ = "production_runs"

    __table_args__ = (
        UniqueConstraint("run_number", name="uq_production_run_number"),
        CheckConstraint("quantity_produced > 0", name="ck_production_run_quantity_positive"),
        Index("idx_production_run_product", "product_id"),
        Index("idx_production_run_produced_on", "produced_on"),
    )

    run_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    quantity_produced: Mapped[int] = mapped_column(Integer, nullable=False)
    produced_on: Mapped[date] = mapped_column(Date, nullable=False)

    # Total ingredient cost at commit time
    cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # List of DeductedIngredient.to_json() dicts
    ingredients_deducted: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    is_reversed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reversed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reversal_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    product: Mapped[Product] = relationship()

    def __repr__(self) -> str:
        return f"<ProductionRun #{self.run_number} product={self.product_id} qty={self.quantity_produced}>"
