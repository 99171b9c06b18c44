"""
Module: bakery_engines
Responsibility:
    Re-exports the pure calculation engines: production planning (recipe
    scaling and batch divisibility) and cost rollup.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import bakery_kernel.domain, bakery_kernel.exceptions and
    bakery_kernel.logging_config.  MUST NOT import bakery_modules.

Invariants enforced:
    - Engines never read the clock or the database.
    - Decimal-only arithmetic.
    - Every public engine call is traced via ``@traced_engine``.
"""

from bakery_engines.costing import CostLine, CostRollup, ProductCost
from bakery_engines.production import (
    PlannedDeduction,
    ProductionPlan,
    ProductionPlanner,
    batch_count,
)
from bakery_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "CostLine",
    "CostRollup",
    "ProductCost",
    "PlannedDeduction",
    "ProductionPlan",
    "ProductionPlanner",
    "batch_count",
    "compute_input_fingerprint",
    "traced_engine",
]
