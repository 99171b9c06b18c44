"""
ORM-level immutability enforcement for ledger records.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Protected                          | Reason
----------------|------------------------------------|------------------------------
Adjustment      | ALWAYS (from creation)             | Ledger is the source of truth
ProductionRun   | Everything except reversal fields  | Historical cost snapshot

Reversing a production run is the only sanctioned mutation of a run: it may
set ``is_reversed``, ``reversed_at``, ``reversal_reason`` and the audit
metadata columns.

===============================================================================
USAGE
===============================================================================

Registered automatically by ``init_engine_from_url``.  To temporarily
disable (TESTS ONLY):

    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event, inspect

from bakery_kernel.exceptions import ImmutabilityViolationError
from bakery_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_PRODUCTION_RUN_MUTABLE_FIELDS = frozenset({
    "is_reversed",
    "reversed_at",
    "reversal_reason",
    "updated_at",
    "updated_by_id",
})


def _check_adjustment_update(mapper, connection, target):
    logger.error(
        "immutability_violation",
        extra={"entity_type": "Adjustment", "entity_id": str(target.id)},
    )
    raise ImmutabilityViolationError(
        entity_type="Adjustment",
        entity_id=str(target.id),
        reason="Adjustments are append-only",
    )


def _check_adjustment_delete(mapper, connection, target):
    logger.error(
        "immutability_violation",
        extra={"entity_type": "Adjustment", "entity_id": str(target.id), "operation": "delete"},
    )
    raise ImmutabilityViolationError(
        entity_type="Adjustment",
        entity_id=str(target.id),
        reason="Adjustments cannot be deleted",
    )


def _check_production_run_update(mapper, connection, target):
    state = inspect(target)
    changed = [
        attr.key
        for attr in state.attrs
        if attr.key not in _PRODUCTION_RUN_MUTABLE_FIELDS and attr.history.has_changes()
    ]
    if changed:
        logger.error(
            "immutability_violation",
            extra={
                "entity_type": "ProductionRun",
                "entity_id": str(target.id),
                "fields": changed,
            },
        )
        raise ImmutabilityViolationError(
            entity_type="ProductionRun",
            entity_id=str(target.id),
            reason=f"Fields are frozen after creation: {', '.join(sorted(changed))}",
        )


def _check_production_run_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ProductionRun",
        entity_id=str(target.id),
        reason="Production runs are reversed, never deleted",
    )


_LISTENERS = (
    ("Adjustment", "before_update", _check_adjustment_update),
    ("Adjustment", "before_delete", _check_adjustment_delete),
    ("ProductionRun", "before_update", _check_production_run_update),
    ("ProductionRun", "before_delete", _check_production_run_delete),
)


def _resolve_targets():
    # Inline import: models import db.base, db.engine imports this module.
    from bakery_kernel.models import Adjustment, ProductionRun

    return {"Adjustment": Adjustment, "ProductionRun": ProductionRun}


def register_immutability_listeners() -> None:
    """Register the ORM listeners (idempotent)."""
    targets = _resolve_targets()
    for name, identifier, fn in _LISTENERS:
        if not event.contains(targets[name], identifier, fn):
            event.listen(targets[name], identifier, fn)


def unregister_immutability_listeners() -> None:
    """Remove the ORM listeners. FOR TESTING ONLY."""
    targets = _resolve_targets()
    for name, identifier, fn in _LISTENERS:
        if event.contains(targets[name], identifier, fn):
            event.remove(targets[name], identifier, fn)
