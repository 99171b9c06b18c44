"""
Pure domain layer.

Conversion, classification and data-carrier code with NO dependencies on
the ORM, the database or wall-clock time (SystemClock excepted).
"""

from bakery_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from bakery_kernel.domain.dtos import (
    AdjustmentRecord,
    DeductedIngredient,
    IngredientStock,
    InventoryItemView,
    ProductionRunRecord,
    ProductSpec,
    RecipeLine,
)
from bakery_kernel.domain.stock_status import (
    DEFAULT_CRITICAL_RATIO,
    StockStatus,
    evaluate_stock_status,
)
from bakery_kernel.domain.units import (
    Dimension,
    UnitKind,
    base_unit_of,
    convert,
    denormalize_cost,
    from_base_unit,
    humanize_quantity,
    is_known_unit,
    normalize_cost,
    parse_unit,
    same_dimension,
    to_base_unit,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AdjustmentRecord",
    "DeductedIngredient",
    "IngredientStock",
    "InventoryItemView",
    "ProductionRunRecord",
    "ProductSpec",
    "RecipeLine",
    "DEFAULT_CRITICAL_RATIO",
    "StockStatus",
    "evaluate_stock_status",
    "Dimension",
    "UnitKind",
    "base_unit_of",
    "convert",
    "denormalize_cost",
    "from_base_unit",
    "humanize_quantity",
    "is_known_unit",
    "normalize_cost",
    "parse_unit",
    "same_dimension",
    "to_base_unit",
    "to_decimal",
]
