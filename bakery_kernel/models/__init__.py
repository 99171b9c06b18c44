"""
ORM models.

Importing this package registers every ledger table on ``Base.metadata``.
The sequence counter table lives beside its service in
``bakery_kernel.services.sequence_service``.
"""

from bakery_kernel.models.inventory import Adjustment, InventoryItem, ItemType
from bakery_kernel.models.production import (
    Product,
    ProductionRun,
    ProductRecipe,
    ProductStatus,
)

__all__ = [
    "Adjustment",
    "InventoryItem",
    "ItemType",
    "Product",
    "ProductionRun",
    "ProductRecipe",
    "ProductStatus",
]
