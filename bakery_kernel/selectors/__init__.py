"""Read-only selectors."""

from bakery_kernel.selectors.adjustment_selector import AdjustmentSelector
from bakery_kernel.selectors.base import BaseSelector
from bakery_kernel.selectors.inventory_selector import (
    IngredientUsage,
    InventorySelector,
    ValuationSummary,
)

__all__ = [
    "AdjustmentSelector",
    "BaseSelector",
    "IngredientUsage",
    "InventorySelector",
    "ValuationSummary",
]
