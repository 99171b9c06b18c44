"""
Module: bakery_kernel.selectors.inventory_selector
Responsibility: Read-only stock views -- the stock report, low-stock list,
    valuation summary and production ingredient usage.  Base-unit values
    are converted to the item's display unit here, at the boundary.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bakery_kernel.domain.dtos import InventoryItemView
from bakery_kernel.domain.stock_status import (
    DEFAULT_CRITICAL_RATIO,
    StockStatus,
    evaluate_stock_status,
)
from bakery_kernel.domain.units import (
    base_unit_of,
    denormalize_cost,
    from_base_unit,
    humanize_quantity,
)
from bakery_kernel.exceptions import ItemNotFoundError
from bakery_kernel.models.inventory import Adjustment, InventoryItem
from bakery_kernel.models.production import ProductionRun
from bakery_kernel.selectors.adjustment_selector import range_end, range_start
from bakery_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ValuationSummary:
    """Aggregate stock value and status counts."""

    item_count: int
    total_value: Decimal
    status_counts: dict[StockStatus, int] = field(default_factory=dict)

    @property
    def reorder_count(self) -> int:
        return sum(n for status, n in self.status_counts.items() if status.needs_reorder)


@dataclass(frozen=True)
class IngredientUsage:
    """Production consumption of one item over a window, in base units."""

    item_id: UUID
    name: str
    unit: str
    used: Decimal
    available: Decimal

    @property
    def display_used(self) -> tuple[Decimal, str]:
        return humanize_quantity(self.used, self.unit)

    @property
    def display_available(self) -> tuple[Decimal, str]:
        return humanize_quantity(self.available, self.unit)


def to_item_view(
    item: InventoryItem,
    critical_ratio: Decimal = DEFAULT_CRITICAL_RATIO,
) -> InventoryItemView:
    return InventoryItemView(
        id=item.id,
        name=item.name,
        unit=item.unit,
        item_type=item.item_type,
        base_unit=base_unit_of(item.unit),
        current_quantity=item.current_quantity,
        min_level=item.min_level,
        max_level=item.max_level,
        cost=item.cost,
        display_quantity=from_base_unit(item.current_quantity, item.unit),
        display_min_level=from_base_unit(item.min_level, item.unit),
        display_max_level=from_base_unit(item.max_level, item.unit),
        display_cost=denormalize_cost(item.cost, item.unit),
        status=evaluate_stock_status(item.current_quantity, item.min_level, critical_ratio),
        version=item.version,
    )


class InventorySelector(BaseSelector[InventoryItem]):
    """Stock-level queries over inventory items."""

    def __init__(self, session: Session, critical_ratio: Decimal = DEFAULT_CRITICAL_RATIO):
        super().__init__(session)
        self.critical_ratio = critical_ratio

    def _items(self, item_type: str | None):
        query = select(InventoryItem).order_by(InventoryItem.name_key)
        if item_type is not None:
            query = query.where(InventoryItem.item_type == str(getattr(item_type, "value", item_type)))
        return self.session.execute(query).scalars().all()

    def get_item_view(self, item_id: UUID) -> InventoryItemView:
        item = self.session.get(InventoryItem, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return to_item_view(item, self.critical_ratio)

    def stock_report(
        self,
        item_type: str | None = None,
        critical_ratio: Decimal | None = None,
    ) -> list[InventoryItemView]:
        """All items (optionally of one type), ordered by name."""
        ratio = self.critical_ratio if critical_ratio is None else critical_ratio
        return [to_item_view(item, ratio) for item in self._items(item_type)]

    def low_stock(self, item_type: str | None = None) -> list[InventoryItemView]:
        """Items whose status is low or critical, critical first."""
        rows = [row for row in self.stock_report(item_type) if row.status.needs_reorder]
        return sorted(rows, key=lambda row: row.status != StockStatus.CRITICAL)

    def valuation_summary(self, item_type: str | None = None) -> ValuationSummary:
        rows = self.stock_report(item_type)
        counts = {status: 0 for status in StockStatus}
        for row in rows:
            counts[row.status] += 1
        return ValuationSummary(
            item_count=len(rows),
            total_value=sum((row.stock_value for row in rows), Decimal("0")),
            status_counts=counts,
        )

    def ingredient_usage(
        self,
        start: date | datetime,
        end: date | datetime,
    ) -> list[IngredientUsage]:
        """
        Quantity consumed by non-reversed production runs in [start, end].

        Only items with consumption in the window are returned, ordered by
        name.  ``available`` is the current quantity, not the quantity at
        ``end``.
        """
        upper, exclusive = range_end(end)
        upper_clause = Adjustment.created_at < upper if exclusive else Adjustment.created_at <= upper

        query = (
            select(InventoryItem, func.sum(Adjustment.amount))
            .join(Adjustment, Adjustment.inventory_item_id == InventoryItem.id)
            .join(ProductionRun, Adjustment.production_run_id == ProductionRun.id)
            .where(ProductionRun.is_reversed == False)  # noqa: E712
            .where(Adjustment.amount < 0)
            .where(Adjustment.created_at >= range_start(start))
            .where(upper_clause)
            .group_by(InventoryItem.id)
            .order_by(InventoryItem.name_key)
        )

        return [
            IngredientUsage(
                item_id=item.id,
                name=item.name,
                unit=base_unit_of(item.unit),
                used=-Decimal(str(total)),
                available=item.current_quantity,
            )
            for item, total in self.session.execute(query).all()
        ]
