"""Kernel utilities."""

from bakery_kernel.utils.locks import ItemLockRegistry, item_locks

__all__ = ["ItemLockRegistry", "item_locks"]
