"""
Production Module (``bakery_modules.production``).

Products, recipes and production runs.  Planning and costing are delegated
to ``bakery_engines``; stock deductions to the kernel ledger.
"""

from bakery_modules.production.service import (
    ProductionService,
    ProductService,
    RecipeEntry,
)

__all__ = [
    "ProductionService",
    "ProductService",
    "RecipeEntry",
]
