"""
bakery_engines.costing -- Product cost and margin rollup.

Responsibility:
    Roll a product's recipe up into the cost of one batch, the cost of one
    unit and the margin against the selling price, from CURRENT ingredient
    costs.  Production runs keep their own historical cost snapshot; this
    figure is recomputed on every call and never stored.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Failure modes:
    - ItemNotFoundError: a recipe line references an item absent from
      ``costs``.
    - margin_percent is None (not an error) when the selling price is zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from bakery_engines.tracer import traced_engine
from bakery_kernel.domain.dtos import IngredientStock, ProductSpec
from bakery_kernel.exceptions import ItemNotFoundError

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CostLine:
    """Cost of one recipe line for one batch."""

    item_id: UUID
    item_name: str
    unit: str
    amount: Decimal
    unit_cost: Decimal
    line_cost: Decimal


@dataclass(frozen=True)
class ProductCost:
    product_id: UUID
    product_name: str
    batch_size: int
    selling_price: Decimal
    lines: tuple[CostLine, ...]
    total_cost: Decimal  # one batch
    unit_cost: Decimal
    margin: Decimal
    margin_percent: Decimal | None

    @property
    def is_profitable(self) -> bool:
        return self.margin > 0


class CostRollup:
    """Pure cost calculator; no I/O, deterministic."""

    @traced_engine("cost_rollup", "1.0", fingerprint_fields=("product",))
    def product_cost(
        self,
        product: ProductSpec,
        costs: Mapping[UUID, IngredientStock] | Iterable[IngredientStock],
    ) -> ProductCost:
        by_id = dict(costs) if isinstance(costs, Mapping) else {c.item_id: c for c in costs}

        lines: list[CostLine] = []
        for line in product.recipe:
            ingredient = by_id.get(line.item_id)
            if ingredient is None:
                raise ItemNotFoundError(line.item_id)
            lines.append(
                CostLine(
                    item_id=ingredient.item_id,
                    item_name=ingredient.name,
                    unit=ingredient.unit,
                    amount=line.amount_required,
                    unit_cost=ingredient.cost_per_base_unit,
                    line_cost=line.amount_required * ingredient.cost_per_base_unit,
                )
            )

        total_cost = sum((line.line_cost for line in lines), Decimal("0"))
        unit_cost = total_cost / product.batch_size
        margin = product.selling_price - unit_cost
        margin_percent = None
        if product.selling_price != 0:
            margin_percent = margin / product.selling_price * HUNDRED

        return ProductCost(
            product_id=product.product_id,
            product_name=product.name,
            batch_size=product.batch_size,
            selling_price=product.selling_price,
            lines=tuple(lines),
            total_cost=total_cost,
            unit_cost=unit_cost,
            margin=margin,
            margin_percent=margin_percent,
        )
