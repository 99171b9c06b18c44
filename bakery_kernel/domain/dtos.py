"""
DTOs -- Frozen data carriers passed between the kernel layers.

Responsibility:
    Decouple the pure engines and the callers from SQLAlchemy models.
    Services and selectors build these from ORM rows; engines consume them.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - All quantities are base-unit Decimals, all costs are per base unit.
    - Instances are immutable (frozen dataclasses).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from bakery_kernel.domain.stock_status import StockStatus


@dataclass(frozen=True)
class AdjustmentRecord:
    """One ledger entry as seen by callers."""

    id: UUID
    item_id: UUID
    item_name: str
    amount: Decimal
    unit: str  # base symbol of the item
    reason: str | None
    created_at: datetime
    created_by_id: UUID
    seq: int
    production_run_id: UUID | None = None

    @property
    def is_addition(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class IngredientStock:
    """Stock snapshot of one inventory item, as the production engines need it."""

    item_id: UUID
    name: str
    unit: str
    available: Decimal
    cost_per_base_unit: Decimal
    version: int = 1


@dataclass(frozen=True)
class RecipeLine:
    """Amount of one ingredient (base unit) needed for a single batch."""

    item_id: UUID
    amount_required: Decimal


@dataclass(frozen=True)
class ProductSpec:
    """A product with its bill of materials."""

    product_id: UUID
    name: str
    batch_size: int
    selling_price: Decimal
    recipe: tuple[RecipeLine, ...] = ()


@dataclass(frozen=True)
class InventoryItemView:
    """
    An inventory item with both base and display values.

    ``display_*`` fields are expressed in the item's own unit (kg, l, ...).
    """

    id: UUID
    name: str
    unit: str
    item_type: str
    base_unit: str
    current_quantity: Decimal
    min_level: Decimal
    max_level: Decimal
    cost: Decimal
    display_quantity: Decimal
    display_min_level: Decimal
    display_max_level: Decimal
    display_cost: Decimal
    status: StockStatus
    version: int

    @property
    def stock_value(self) -> Decimal:
        return self.current_quantity * self.cost


@dataclass(frozen=True)
class DeductedIngredient:
    """Snapshot line stored on a production run."""

    item_id: UUID
    item_name: str
    amount: Decimal
    unit: str
    unit_cost: Decimal
    line_cost: Decimal

    def to_json(self) -> dict:
        return {
            "item_id": str(self.item_id),
            "item_name": self.item_name,
            "amount": str(self.amount),
            "unit": self.unit,
            "unit_cost": str(self.unit_cost),
            "line_cost": str(self.line_cost),
        }

    @classmethod
    def from_json(cls, data: dict) -> DeductedIngredient:
        return cls(
            item_id=UUID(data["item_id"]),
            item_name=data["item_name"],
            amount=Decimal(data["amount"]),
            unit=data["unit"],
            unit_cost=Decimal(data["unit_cost"]),
            line_cost=Decimal(data["line_cost"]),
        )


@dataclass(frozen=True)
class ProductionRunRecord:
    """A committed production run and the adjustments it produced."""

    id: UUID
    run_number: int
    product_id: UUID
    product_name: str
    quantity_produced: int
    produced_on: date
    cost: Decimal
    ingredients_deducted: tuple[DeductedIngredient, ...]
    notes: str | None
    is_reversed: bool = False
    adjustments: tuple[AdjustmentRecord, ...] = field(default_factory=tuple)
