"""
Stock status -- tri-state classification of an item's stock level.

Pure function over base-unit quantities.  Boundaries are inclusive on the
low side: an item exactly at ``min_level`` is LOW, an item exactly at
``min_level * critical_ratio`` is CRITICAL.
"""

from decimal import Decimal
from enum import Enum

from bakery_kernel.domain.units import to_decimal

DEFAULT_CRITICAL_RATIO = Decimal("0.5")


class StockStatus(str, Enum):
    CRITICAL = "critical"
    LOW = "low"
    IN_STOCK = "in-stock"

    @property
    def needs_reorder(self) -> bool:
        return self is not StockStatus.IN_STOCK


def evaluate_stock_status(
    current_quantity: Decimal | int | str,
    min_level: Decimal | int | str,
    critical_ratio: Decimal | str = DEFAULT_CRITICAL_RATIO,
) -> StockStatus:
    """Classify ``current_quantity`` against ``min_level`` (both in base units)."""
    quantity = to_decimal(current_quantity)
    minimum = to_decimal(min_level, field="min_level")
    if quantity <= minimum * to_decimal(critical_ratio, field="critical_ratio"):
        return StockStatus.CRITICAL
    if quantity <= minimum:
        return StockStatus.LOW
    return StockStatus.IN_STOCK
