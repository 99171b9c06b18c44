"""
Inventory Module Service (``bakery_modules.inventory.service``).

Responsibility
--------------
Item lifecycle and stock adjustments as a user enters them: quantities,
levels and costs in the item's display unit (kg, l, ...), converted to the
base unit before they reach the ledger.  Thin glue over
``InventoryLedger`` and ``InventorySelector``.

Invariants
----------
- Each public method owns its transaction: ``session.commit()`` on success,
  ``session.rollback()`` on any failure, then re-raise.
- Each method that touches an existing item holds that item's in-process
  lock (``ItemLockRegistry``) for the whole unit of work, commit included.
- Quantity only ever changes through the ledger; ``update_item`` cannot
  touch it.

Usage::

    service = InventoryService(session, clock=clock)
    flour = service.create_item(
        name="Flour", unit="kg", item_type="raw_material",
        current_quantity=5, min_level=2, max_level=50, cost=12000,
        actor_id=actor_id,
    )
    service.adjust(flour.id, 500, "g", "subtract", "Spillage", actor_id)
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bakery_kernel.domain.clock import Clock, SystemClock
from bakery_kernel.domain.dtos import AdjustmentRecord, InventoryItemView
from bakery_kernel.domain.stock_status import DEFAULT_CRITICAL_RATIO
from bakery_kernel.domain.units import (
    base_unit_of,
    convert,
    is_known_unit,
    normalize_cost,
    same_dimension,
    to_base_unit,
    to_decimal,
)
from bakery_kernel.exceptions import (
    DuplicateItemNameError,
    InvalidCostError,
    InvalidLevelsError,
    InvalidQuantityError,
    StockConflictError,
    UnitMismatchError,
    ValidationError,
)
from bakery_kernel.logging_config import LogContext, get_logger
from bakery_kernel.models.inventory import InventoryItem, ItemType
from bakery_kernel.selectors.adjustment_selector import AdjustmentSelector
from bakery_kernel.selectors.inventory_selector import InventorySelector, to_item_view
from bakery_kernel.services.base import translate_db_errors
from bakery_kernel.services.ledger_service import InventoryLedger
from bakery_kernel.utils.locks import ItemLockRegistry, item_locks

logger = get_logger("modules.inventory.service")

OPENING_BALANCE_REASON = "Opening balance"


class AdjustmentAction(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"

    @classmethod
    def parse(cls, value: AdjustmentAction | str) -> AdjustmentAction:
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key == "minus":
            return cls.SUBTRACT
        try:
            return cls(key)
        except ValueError as e:
            raise ValidationError(
                f"action must be 'add' or 'subtract', got '{value}'", field="action"
            ) from e


def name_key(name: str) -> str:
    """Uniqueness key for item names: trimmed and case-folded."""
    return name.strip().lower()


def _parse_item_type(item_type: ItemType | str) -> ItemType:
    try:
        return ItemType(getattr(item_type, "value", item_type))
    except ValueError as e:
        raise ValidationError(
            f"item_type must be one of {[t.value for t in ItemType]}, got '{item_type}'",
            field="item_type",
        ) from e


def _require_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise ValidationError("name is required", field="name")
    return name.strip()


def _require_unit(unit: str | None) -> str:
    if unit is None or not is_known_unit(unit):
        raise ValidationError(f"unknown unit '{unit}'", field="unit")
    return unit.strip()


def _validate_levels(min_level: Decimal, max_level: Decimal) -> None:
    if min_level < 0:
        raise InvalidQuantityError("min_level", min_level, "must not be negative")
    if max_level <= 0:
        raise InvalidQuantityError("max_level", max_level, "must be greater than zero")
    if min_level >= max_level:
        raise InvalidLevelsError(min_level, max_level)


class InventoryService:
    """
    Orchestrates inventory item maintenance and adjustments.

    Transaction boundary: this service commits on success, rolls back on
    failure.  The ledger it drives only flushes.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        critical_ratio: Decimal = DEFAULT_CRITICAL_RATIO,
        locks: ItemLockRegistry | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._critical_ratio = critical_ratio
        self._locks = locks or item_locks
        self._ledger = InventoryLedger(session, self._clock)
        self._selector = InventorySelector(session, critical_ratio)
        self._adjustments = AdjustmentSelector(session)

    @property
    def ledger(self) -> InventoryLedger:
        return self._ledger

    def _commit(self) -> None:
        with translate_db_errors("commit"):
            self._session.commit()

    def _view(self, item: InventoryItem) -> InventoryItemView:
        return to_item_view(item, self._critical_ratio)

    def _ensure_unique_name(
        self, name: str, item_type: ItemType, exclude_id: UUID | None = None
    ) -> None:
        query = select(InventoryItem.id).where(
            InventoryItem.name_key == name_key(name),
            InventoryItem.item_type == item_type.value,
        )
        if exclude_id is not None:
            query = query.where(InventoryItem.id != exclude_id)
        if self._session.execute(query).first() is not None:
            raise DuplicateItemNameError(name, item_type.value)

    # =========================================================================
    # Item lifecycle
    # =========================================================================

    def create_item(
        self,
        name: str,
        unit: str,
        item_type: ItemType | str,
        current_quantity: Decimal | int | str,
        min_level: Decimal | int | str,
        max_level: Decimal | int | str,
        cost: Decimal | int | str,
        actor_id: UUID,
    ) -> InventoryItemView:
        """
        Create an item from display-unit inputs.

        Preconditions:
            - ``name`` is non-blank and unique (case-insensitively) within
              ``item_type``.
            - ``unit`` is a recognized unit.
            - 0 <= min_level < max_level; current_quantity >= 0; cost > 0.

        Postconditions:
            - Quantities and levels are stored in the base unit, cost per
              base unit.
            - A non-zero opening quantity is booked as an "Opening balance"
              adjustment, so the ledger fold equals current_quantity.
        """
        clean_name = _require_name(name)
        clean_unit = _require_unit(unit)
        kind = _parse_item_type(item_type)

        quantity = to_decimal(current_quantity, field="current_quantity")
        minimum = to_decimal(min_level, field="min_level")
        maximum = to_decimal(max_level, field="max_level")
        unit_cost = to_decimal(cost, field="cost")

        if quantity < 0:
            raise InvalidQuantityError("current_quantity", quantity, "must not be negative")
        _validate_levels(minimum, maximum)
        if unit_cost <= 0:
            raise InvalidCostError(unit_cost)

        try:
            with LogContext.bind(actor_id=actor_id):
                self._ensure_unique_name(clean_name, kind)

                item = InventoryItem(
                    name=clean_name,
                    name_key=name_key(clean_name),
                    unit=clean_unit,
                    item_type=kind.value,
                    current_quantity=Decimal("0"),
                    min_level=to_base_unit(minimum, clean_unit),
                    max_level=to_base_unit(maximum, clean_unit),
                    cost=normalize_cost(unit_cost, clean_unit),
                    created_by_id=actor_id,
                )
                self._session.add(item)
                with translate_db_errors("create_item"):
                    try:
                        self._session.flush()
                    except IntegrityError as e:
                        raise DuplicateItemNameError(clean_name, kind.value) from e

                base_quantity = to_base_unit(quantity, clean_unit)
                if base_quantity > 0:
                    self._ledger.record_adjustment(
                        item.id, base_quantity, OPENING_BALANCE_REASON, actor_id
                    )

                self._commit()
                logger.info(
                    "inventory_item_created",
                    extra={
                        "item_id": str(item.id),
                        "item_name": item.name,
                        "unit": item.unit,
                        "item_type": item.item_type,
                        "base_quantity": base_quantity,
                    },
                )
                return self._view(item)
        except Exception:
            self._session.rollback()
            raise

    def update_item(
        self,
        item_id: UUID,
        actor_id: UUID,
        *,
        name: str | None = None,
        unit: str | None = None,
        min_level: Decimal | int | str | None = None,
        max_level: Decimal | int | str | None = None,
        cost: Decimal | int | str | None = None,
        expected_version: int | None = None,
    ) -> InventoryItemView:
        """
        Edit item metadata, levels and cost (display-unit inputs).

        Levels and cost are read in the item's (possibly new) unit.  Fields
        left as None keep their stored base value.  A unit change to another
        dimension is rejected once the item has ledger history; within a
        dimension the base values are unaffected.
        """
        with self._locks.hold(item_id):
            try:
                with LogContext.bind(actor_id=actor_id, item_id=item_id):
                    item = self._ledger.lock_item(item_id)
                    if expected_version is not None and item.version != expected_version:
                        raise StockConflictError(item.id, expected_version, item.version)

                    new_unit = item.unit if unit is None else _require_unit(unit)
                    if not same_dimension(item.unit, new_unit) and self._adjustments.has_history(item.id):
                        raise UnitMismatchError(item.unit, new_unit)

                    new_minimum = (
                        item.min_level if min_level is None
                        else to_base_unit(to_decimal(min_level, field="min_level"), new_unit)
                    )
                    new_maximum = (
                        item.max_level if max_level is None
                        else to_base_unit(to_decimal(max_level, field="max_level"), new_unit)
                    )
                    _validate_levels(new_minimum, new_maximum)

                    if cost is not None:
                        new_cost = to_decimal(cost, field="cost")
                        if new_cost <= 0:
                            raise InvalidCostError(new_cost)
                        item.cost = normalize_cost(new_cost, new_unit)

                    if name is not None:
                        clean_name = _require_name(name)
                        self._ensure_unique_name(clean_name, ItemType(item.item_type), exclude_id=item.id)
                        item.name = clean_name
                        item.name_key = name_key(clean_name)

                    item.unit = new_unit
                    item.min_level = new_minimum
                    item.max_level = new_maximum
                    item.updated_by_id = actor_id

                    with translate_db_errors("update_item"):
                        try:
                            self._session.flush()
                        except StaleDataError as e:
                            raise StockConflictError(item.id, item.version, None) from e
                    self._commit()
                    logger.info(
                        "inventory_item_updated",
                        extra={"unit": item.unit, "version": item.version},
                    )
                    return self._view(item)
            except Exception:
                self._session.rollback()
                raise

    def get_item(self, item_id: UUID) -> InventoryItemView:
        with translate_db_errors("get_item"):
            return self._selector.get_item_view(item_id)

    # =========================================================================
    # Stock movements
    # =========================================================================

    def adjust(
        self,
        item_id: UUID,
        amount: Decimal | int | str,
        unit: str | None,
        action: AdjustmentAction | str,
        reason: str | None,
        actor_id: UUID,
    ) -> AdjustmentRecord:
        """
        Add or subtract stock entered in ``unit`` (default: the item's unit).

        Raises:
            InvalidQuantityError: amount is not strictly positive.
            UnitMismatchError: ``unit`` measures another dimension.
            NegativeStockError: subtracting more than is in stock.
        """
        direction = AdjustmentAction.parse(action)
        entered = to_decimal(amount, field="amount")
        if entered <= 0:
            raise InvalidQuantityError("amount", entered, "must be greater than zero")

        with self._locks.hold(item_id):
            try:
                item = self._ledger.lock_item(item_id)
                base_amount = convert(entered, unit or item.unit, base_unit_of(item.unit))
                signed = base_amount if direction is AdjustmentAction.ADD else -base_amount
                record = self._ledger.record_adjustment(
                    item.id, signed, reason.strip() if reason else None, actor_id
                )
                self._commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def write_off(self, item_id: UUID, reason: str | None, actor_id: UUID) -> AdjustmentRecord:
        """Write the item's whole remaining stock off (waste, expiry)."""
        with self._locks.hold(item_id):
            try:
                record = self._ledger.write_off(item_id, reason, actor_id)
                self._commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def reconcile(self, item_id: UUID, actor_id: UUID | None = None) -> Decimal:
        """Rebuild an item's cached quantity from its ledger and commit."""
        with self._locks.hold(item_id):
            try:
                folded = self._ledger.reconcile(item_id, actor_id)
                self._commit()
                return folded
            except Exception:
                self._session.rollback()
                raise

    def list_adjustments(
        self,
        item_id: UUID | None = None,
        *,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
        text: str | None = None,
        item_type: str | None = None,
    ) -> list[AdjustmentRecord]:
        return self._ledger.list_adjustments(
            item_id, start=start, end=end, text=text, item_type=item_type
        )
