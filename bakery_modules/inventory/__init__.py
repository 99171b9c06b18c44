"""
Inventory Module (``bakery_modules.inventory``).

Item lifecycle and stock adjustments in display units.  All quantity
changes go through ``bakery_kernel.services.InventoryLedger``.
"""

from bakery_modules.inventory.service import (
    OPENING_BALANCE_REASON,
    AdjustmentAction,
    InventoryService,
    name_key,
)

__all__ = [
    "OPENING_BALANCE_REASON",
    "AdjustmentAction",
    "InventoryService",
    "name_key",
]
