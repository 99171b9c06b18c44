"""Kernel services -- flush-only writers."""

from bakery_kernel.services.base import BaseService, translate_db_errors
from bakery_kernel.services.ledger_service import InventoryLedger
from bakery_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "BaseService",
    "InventoryLedger",
    "SequenceCounter",
    "SequenceService",
    "translate_db_errors",
]
