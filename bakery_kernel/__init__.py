"""
Bakery Kernel

Inventory quantity/cost normalization and ledger core for a bakery
back-office:
- Base-unit storage for every stocked item (g, ml, pcs)
- Symmetric quantity/cost conversion at the boundary
- Append-only adjustment ledger with a cached quantity projection
- Derived stock status
"""

__version__ = "0.1.0"
