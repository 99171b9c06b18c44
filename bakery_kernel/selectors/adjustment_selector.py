"""
Module: bakery_kernel.selectors.adjustment_selector
Responsibility: Read-only listing of inventory adjustments.

Filtering rule:
    A free-text filter (matched case-insensitively against the reason and
    the item name) takes precedence over a date range.  When text is given
    the range is ignored, never combined with it.

Ordering:
    (created_at, seq) ascending -- the order in which the ledger folds.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from bakery_kernel.domain.dtos import AdjustmentRecord
from bakery_kernel.domain.units import base_unit_of
from bakery_kernel.logging_config import get_logger
from bakery_kernel.models.inventory import Adjustment, InventoryItem
from bakery_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.adjustment")


def range_start(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def range_end(value: date | datetime) -> tuple[datetime, bool]:
    """Upper bound and whether it is exclusive (a plain date covers the whole day)."""
    if isinstance(value, datetime):
        return value, False
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc), True


def to_adjustment_record(adjustment: Adjustment, item: InventoryItem) -> AdjustmentRecord:
    return AdjustmentRecord(
        id=adjustment.id,
        item_id=item.id,
        item_name=item.name,
        amount=adjustment.amount,
        unit=base_unit_of(item.unit),
        reason=adjustment.reason,
        created_at=adjustment.created_at,
        created_by_id=adjustment.created_by_id,
        seq=adjustment.seq,
        production_run_id=adjustment.production_run_id,
    )


class AdjustmentSelector(BaseSelector[Adjustment]):
    """Queries over the adjustment ledger."""

    def __init__(self, session: Session):
        super().__init__(session)

    def list_adjustments(
        self,
        item_id: UUID | None = None,
        *,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
        text: str | None = None,
        item_type: str | None = None,
    ) -> list[AdjustmentRecord]:
        """
        List adjustments, optionally for one item.

        Args:
            item_id: Restrict to a single item.
            start: Inclusive lower bound on created_at.  A date means the
                start of that day (UTC).
            end: Inclusive upper bound on created_at.  A date covers the
                whole day.
            text: Case-insensitive substring of reason or item name.  When
                non-blank, ``start``/``end`` are ignored.
            item_type: Restrict to raw materials or supplies.
        """
        query = select(Adjustment, InventoryItem).join(
            InventoryItem, Adjustment.inventory_item_id == InventoryItem.id
        )

        if item_id is not None:
            query = query.where(Adjustment.inventory_item_id == item_id)
        if item_type is not None:
            query = query.where(InventoryItem.item_type == str(getattr(item_type, "value", item_type)))

        needle = text.strip().lower() if text else ""
        if needle:
            if start is not None or end is not None:
                logger.debug(
                    "adjustment_date_range_ignored",
                    extra={"text": needle, "start": start, "end": end},
                )
            query = query.where(
                or_(
                    func.lower(Adjustment.reason).contains(needle, autoescape=True),
                    InventoryItem.name_key.contains(needle, autoescape=True),
                )
            )
        else:
            if start is not None:
                query = query.where(Adjustment.created_at >= range_start(start))
            if end is not None:
                upper, exclusive = range_end(end)
                if exclusive:
                    query = query.where(Adjustment.created_at < upper)
                else:
                    query = query.where(Adjustment.created_at <= upper)

        query = query.order_by(Adjustment.created_at, Adjustment.seq)

        return [
            to_adjustment_record(adjustment, item)
            for adjustment, item in self.session.execute(query).all()
        ]

    def for_production_run(self, run_id: UUID) -> list[AdjustmentRecord]:
        """Adjustments booked by (or reversing) one production run, in seq order."""
        query = (
            select(Adjustment, InventoryItem)
            .join(InventoryItem, Adjustment.inventory_item_id == InventoryItem.id)
            .where(Adjustment.production_run_id == run_id)
            .order_by(Adjustment.seq)
        )
        return [
            to_adjustment_record(adjustment, item)
            for adjustment, item in self.session.execute(query).all()
        ]

    def ledger_sum(self, item_id: UUID) -> Decimal:
        """Sum of all adjustment amounts for an item (0 when none)."""
        total = self.session.execute(
            select(func.coalesce(func.sum(Adjustment.amount), 0))
            .where(Adjustment.inventory_item_id == item_id)
        ).scalar_one()
        return Decimal(str(total))

    def has_history(self, item_id: UUID) -> bool:
        return self.session.execute(
            select(func.count(Adjustment.id)).where(Adjustment.inventory_item_id == item_id)
        ).scalar_one() > 0
