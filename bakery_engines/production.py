"""
bakery_engines.production -- Recipe scaling and batch consumption planning.

Responsibility:
    Turn "make N units of product P" into the list of base-unit ingredient
    deductions and their cost, given a snapshot of stock.  Committing the
    plan (locking, writing adjustments) is ProductionService's job.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ProductSpec / IngredientStock DTOs from bakery_kernel.domain.

Invariants enforced:
    - Batch divisibility: the requested quantity must be a positive
      multiple of the product's batch size.
    - Scaling: deduction = amount_required * (requested / batch_size).
      Because requested is a whole number of batches the result is exact.
    - The plan snapshots each ingredient's available quantity and version
      so the committer can detect stock that moved after planning.

Failure modes:
    - InvalidQuantityError: requested quantity is not a positive whole number.
    - BatchSizeError (severity "warning"): not a multiple of the batch size.
    - ItemNotFoundError: a recipe line references an item absent from stock.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from bakery_engines.tracer import traced_engine
from bakery_kernel.domain.dtos import IngredientStock, ProductSpec
from bakery_kernel.domain.units import to_decimal
from bakery_kernel.exceptions import (
    BatchSizeError,
    InvalidQuantityError,
    ItemNotFoundError,
)
from bakery_kernel.logging_config import get_logger

logger = get_logger("engines.production")

StockSnapshot = Mapping[UUID, IngredientStock] | Iterable[IngredientStock]


def _stock_by_id(stock: StockSnapshot) -> dict[UUID, IngredientStock]:
    if isinstance(stock, Mapping):
        return dict(stock)
    return {s.item_id: s for s in stock}


def batch_count(requested_quantity: int | Decimal | str, batch_size: int) -> int:
    """
    Number of batches needed for ``requested_quantity`` units.

    Raises InvalidQuantityError for non-positive or fractional quantities
    and BatchSizeError when the quantity is not a multiple of ``batch_size``.
    """
    quantity = to_decimal(requested_quantity, field="quantity")
    if quantity <= 0 or quantity != quantity.to_integral_value():
        raise InvalidQuantityError(
            "quantity", requested_quantity, "must be a positive whole number"
        )
    if quantity % batch_size != 0:
        raise BatchSizeError(requested_quantity, batch_size)
    return int(quantity) // batch_size


@dataclass(frozen=True)
class PlannedDeduction:
    """One ingredient line of a production plan (base units)."""

    item_id: UUID
    item_name: str
    unit: str
    amount: Decimal
    available: Decimal
    unit_cost: Decimal
    line_cost: Decimal
    version: int

    @property
    def remaining(self) -> Decimal:
        return self.available - self.amount

    @property
    def shortage(self) -> Decimal:
        return max(self.amount - self.available, Decimal("0"))

    @property
    def is_sufficient(self) -> bool:
        return self.amount <= self.available


@dataclass(frozen=True)
class ProductionPlan:
    """The deductions and cost of producing ``quantity`` units."""

    product_id: UUID
    product_name: str
    quantity: int
    batch_size: int
    batches: int
    deductions: tuple[PlannedDeduction, ...]
    total_cost: Decimal

    @property
    def is_feasible(self) -> bool:
        return all(d.is_sufficient for d in self.deductions)

    @property
    def shortages(self) -> tuple[PlannedDeduction, ...]:
        return tuple(d for d in self.deductions if not d.is_sufficient)

    @property
    def unit_cost(self) -> Decimal:
        return self.total_cost / self.quantity

    @property
    def item_ids(self) -> tuple[UUID, ...]:
        return tuple(d.item_id for d in self.deductions)


class ProductionPlanner:
    """
    Pure planner for production runs.

    Contract:
        No I/O, no database access, fully deterministic.  Stock is passed
        in as a snapshot.
    """

    @traced_engine("production_planner", "1.0", fingerprint_fields=("product", "requested_quantity"))
    def plan(
        self,
        product: ProductSpec,
        requested_quantity: int | Decimal | str,
        stock: StockSnapshot,
    ) -> ProductionPlan:
        batches = batch_count(requested_quantity, product.batch_size)
        by_id = _stock_by_id(stock)

        deductions: list[PlannedDeduction] = []
        for line in product.recipe:
            ingredient = by_id.get(line.item_id)
            if ingredient is None:
                raise ItemNotFoundError(line.item_id)
            amount = line.amount_required * batches
            deductions.append(
                PlannedDeduction(
                    item_id=ingredient.item_id,
                    item_name=ingredient.name,
                    unit=ingredient.unit,
                    amount=amount,
                    available=ingredient.available,
                    unit_cost=ingredient.cost_per_base_unit,
                    line_cost=amount * ingredient.cost_per_base_unit,
                    version=ingredient.version,
                )
            )

        plan = ProductionPlan(
            product_id=product.product_id,
            product_name=product.name,
            quantity=batches * product.batch_size,
            batch_size=product.batch_size,
            batches=batches,
            deductions=tuple(deductions),
            total_cost=sum((d.line_cost for d in deductions), Decimal("0")),
        )

        if not plan.is_feasible:
            logger.info(
                "production_plan_short",
                extra={
                    "product_id": str(product.product_id),
                    "quantity": plan.quantity,
                    "short_items": [str(d.item_id) for d in plan.shortages],
                },
            )
        return plan

    def max_producible(self, product: ProductSpec, stock: StockSnapshot) -> int | None:
        """
        Largest multiple of the batch size that current stock supports.

        Returns None for a product without recipe lines, which nothing
        in stock constrains.
        """
        if not product.recipe:
            return None
        by_id = _stock_by_id(stock)

        batches: int | None = None
        for line in product.recipe:
            ingredient = by_id.get(line.item_id)
            if ingredient is None:
                raise ItemNotFoundError(line.item_id)
            line_batches = int(max(ingredient.available, Decimal("0")) // line.amount_required)
            batches = line_batches if batches is None else min(batches, line_batches)
        return (batches or 0) * product.batch_size
