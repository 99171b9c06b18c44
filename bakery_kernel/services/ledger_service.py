"""
InventoryLedger -- the append-only quantity ledger of inventory items.

Responsibility:
    Every change to an item's quantity is an Adjustment row.  The item's
    ``current_quantity`` is a cached projection of the ledger, updated in
    the same flush as the Adjustment that changes it.

Architecture position:
    Kernel > Services -- flush-only.  Callers (InventoryService,
    ProductionService, tests) own commit and rollback.

Invariants enforced:
    - Ledger consistency: sum(adjustment.amount) == current_quantity for
      every item, after every committed unit of work.
    - Non-negativity: an adjustment that would take the quantity below zero
      is rejected with NegativeStockError and nothing is written.
    - Serialization: the item row is read with SELECT ... FOR UPDATE and
      carries a version counter; a concurrent writer that slipped through
      fails with StockConflictError instead of losing an update.

Failure modes:
    - ItemNotFoundError: unknown item id.
    - InvalidQuantityError: zero or non-numeric amount.
    - NegativeStockError: the adjustment would overdraw the item.
    - StockConflictError: expected_version mismatch or stale flush.
    - CollaboratorUnavailableError: database unreachable.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bakery_kernel.domain.clock import Clock, SystemClock
from bakery_kernel.domain.dtos import AdjustmentRecord
from bakery_kernel.domain.units import to_decimal
from bakery_kernel.exceptions import (
    InvalidQuantityError,
    ItemNotFoundError,
    NegativeStockError,
    StockConflictError,
)
from bakery_kernel.logging_config import LogContext, get_logger
from bakery_kernel.models.inventory import Adjustment, InventoryItem
from bakery_kernel.selectors.adjustment_selector import (
    AdjustmentSelector,
    to_adjustment_record,
)
from bakery_kernel.services.base import BaseService, translate_db_errors
from bakery_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger")

WRITE_OFF_REASON = "Write-off"


class InventoryLedger(BaseService[Adjustment]):
    """
    Records and folds inventory adjustments.

    Contract:
        ``record_adjustment`` is the ONLY writer of
        ``InventoryItem.current_quantity``.

    Non-goals:
        - Does NOT convert units; amounts are already in the base unit.
        - Does NOT commit.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)
        self._adjustments = AdjustmentSelector(session)

    # -------------------------------------------------------------------------
    # Item access
    # -------------------------------------------------------------------------

    def lock_item(self, item_id: UUID) -> InventoryItem:
        """Load ``item_id`` with a row lock, refreshing any cached state."""
        with translate_db_errors("lock_item"):
            item = self.session.execute(
                select(InventoryItem)
                .where(InventoryItem.id == item_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def _get_item(self, item_id: UUID) -> InventoryItem:
        item = self.session.get(InventoryItem, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def record_adjustment(
        self,
        item_id: UUID,
        amount: Decimal | int | str,
        reason: str | None,
        actor_id: UUID,
        *,
        production_run_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> AdjustmentRecord:
        """
        Append a signed adjustment and move the cached quantity with it.

        Args:
            item_id: Item to adjust.
            amount: Signed base-unit amount; positive adds stock.
            reason: Free-text reason (may be None).
            actor_id: Who made the change.
            production_run_id: Run that caused the adjustment, if any.
            expected_version: Version the caller read the item at.  A
                mismatch raises StockConflictError before anything is written.
        """
        delta = to_decimal(amount, field="amount")
        if delta == 0:
            raise InvalidQuantityError("amount", delta, "adjustment amount must not be zero")

        with LogContext.bind(item_id=item_id, actor_id=actor_id, production_run_id=production_run_id):
            item = self.lock_item(item_id)

            if expected_version is not None and item.version != expected_version:
                logger.warning(
                    "stock_version_conflict",
                    extra={"expected_version": expected_version, "actual_version": item.version},
                )
                raise StockConflictError(item.id, expected_version, item.version)

            new_quantity = item.current_quantity + delta
            if new_quantity < 0:
                logger.warning(
                    "adjustment_rejected_negative_stock",
                    extra={
                        "available": item.current_quantity,
                        "amount": delta,
                    },
                )
                raise NegativeStockError(item.id, item.name, item.current_quantity, -delta)

            read_version = item.version
            with translate_db_errors("record_adjustment"):
                seq = self._sequences.next_value(SequenceService.ADJUSTMENT)
                adjustment = Adjustment(
                    inventory_item_id=item.id,
                    amount=delta,
                    reason=reason,
                    seq=seq,
                    created_at=self._clock.now(),
                    created_by_id=actor_id,
                    production_run_id=production_run_id,
                )
                self.session.add(adjustment)
                item.current_quantity = new_quantity
                item.updated_by_id = actor_id
                try:
                    self.session.flush()
                except StaleDataError as e:
                    logger.warning("stock_stale_flush", extra={"read_version": read_version})
                    raise StockConflictError(item.id, read_version, None) from e

            logger.info(
                "adjustment_recorded",
                extra={
                    "seq": seq,
                    "amount": delta,
                    "new_quantity": new_quantity,
                    "reason": reason,
                },
            )
            return to_adjustment_record(adjustment, item)

    def write_off(self, item_id: UUID, reason: str | None, actor_id: UUID) -> AdjustmentRecord:
        """
        Book the item's entire remaining quantity out (waste, expiry).

        The amount is read under the row lock, so the item ends at exactly
        zero even if another writer moved it since the caller last looked.
        """
        item = self.lock_item(item_id)
        if item.current_quantity <= 0:
            raise InvalidQuantityError(
                "current_quantity", item.current_quantity, "item is already out of stock"
            )
        logger.info(
            "write_off_requested",
            extra={"item_id": str(item.id), "quantity": item.current_quantity},
        )
        return self.record_adjustment(
            item.id,
            -item.current_quantity,
            reason or WRITE_OFF_REASON,
            actor_id,
            expected_version=item.version,
        )

    def reconcile(self, item_id: UUID, actor_id: UUID | None = None) -> Decimal:
        """
        Rebuild the cached quantity from the ledger fold.

        Returns the folded quantity.  A divergence is logged as a warning
        and corrected in the caller's transaction.
        """
        item = self.lock_item(item_id)
        folded = self.ledger_quantity(item_id)
        if folded != item.current_quantity:
            logger.warning(
                "ledger_cache_diverged",
                extra={
                    "item_id": str(item.id),
                    "cached": item.current_quantity,
                    "ledger": folded,
                },
            )
            item.current_quantity = folded
            if actor_id is not None:
                item.updated_by_id = actor_id
            with translate_db_errors("reconcile"):
                self.session.flush()
        return folded

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_adjustments(
        self,
        item_id: UUID | None = None,
        *,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
        text: str | None = None,
        item_type: str | None = None,
    ) -> list[AdjustmentRecord]:
        """See AdjustmentSelector.list_adjustments; text wins over the date range."""
        with translate_db_errors("list_adjustments"):
            return self._adjustments.list_adjustments(
                item_id, start=start, end=end, text=text, item_type=item_type
            )

    def current_quantity(self, item_id: UUID) -> Decimal:
        """The cached projection, in the base unit."""
        with translate_db_errors("current_quantity"):
            return self._get_item(item_id).current_quantity

    def ledger_quantity(self, item_id: UUID) -> Decimal:
        """Sum of the item's adjustments, in the base unit."""
        with translate_db_errors("ledger_quantity"):
            self._get_item(item_id)
            return self._adjustments.ledger_sum(item_id)

    def verify(self, item_id: UUID) -> bool:
        """True when the cached quantity equals the ledger fold."""
        return self.current_quantity(item_id) == self.ledger_quantity(item_id)
