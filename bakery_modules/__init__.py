"""
Bakery modules -- orchestration over the kernel and the engines.

Each module service owns its transaction boundary (commit on success,
rollback on failure).  Modules import from ``bakery_engines`` and
``bakery_kernel``, never the reverse.
"""

from bakery_modules.inventory import AdjustmentAction, InventoryService
from bakery_modules.production import ProductionService, ProductService, RecipeEntry

__all__ = [
    "AdjustmentAction",
    "InventoryService",
    "ProductionService",
    "ProductService",
    "RecipeEntry",
]
