"""
Tests for InventoryLedger.

Verifies:
- Ledger invariant: sum(adjustments) == current_quantity
- Negative results rejected with state unchanged (100 - 150 fails, stays 100)
- Zero amounts rejected
- Ordering by (created_at, seq)
- Text filter wins over the date range
- write_off, verify and reconcile
- Immutability of adjustment rows
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, update

from bakery_kernel.exceptions import (
    ImmutabilityViolationError,
    InvalidQuantityError,
    ItemNotFoundError,
    NegativeStockError,
    StockConflictError,
    ValidationError,
)
from bakery_kernel.models.inventory import Adjustment, InventoryItem


@pytest.fixture
def eggs(create_item):
    """100 pcs of eggs."""
    return create_item(name="Eggs", unit="pcs", quantity="100", min_level="20", max_level="500", cost="25")


class TestRecordAdjustment:
    def test_addition_updates_cache_and_ledger(self, ledger, session, eggs, test_actor_id):
        record = ledger.record_adjustment(eggs.id, Decimal("50"), "Delivery", test_actor_id)
        session.commit()

        assert record.amount == Decimal("50")
        assert record.is_addition
        assert record.unit == "pcs"
        assert record.created_by_id == test_actor_id
        assert ledger.current_quantity(eggs.id) == Decimal("150")
        assert ledger.ledger_quantity(eggs.id) == Decimal("150")
        assert ledger.verify(eggs.id)

    def test_rejects_negative_result_and_keeps_state(self, ledger, session, eggs, test_actor_id):
        with pytest.raises(NegativeStockError) as exc_info:
            ledger.record_adjustment(eggs.id, Decimal("-150"), "Breakage", test_actor_id)
        session.rollback()

        assert isinstance(exc_info.value, ValidationError)
        assert Decimal(exc_info.value.available) == Decimal("100")
        assert ledger.current_quantity(eggs.id) == Decimal("100")
        assert len(ledger.list_adjustments(eggs.id)) == 1

    def test_exactly_to_zero_allowed(self, ledger, session, eggs, test_actor_id):
        ledger.record_adjustment(eggs.id, Decimal("-100"), "Used up", test_actor_id)
        session.commit()

        assert ledger.current_quantity(eggs.id) == Decimal("0")
        assert ledger.verify(eggs.id)

    def test_zero_amount_rejected(self, ledger, eggs, test_actor_id):
        with pytest.raises(InvalidQuantityError):
            ledger.record_adjustment(eggs.id, Decimal("0"), None, test_actor_id)

    def test_unknown_item(self, ledger, test_actor_id):
        with pytest.raises(ItemNotFoundError):
            ledger.record_adjustment(uuid4(), Decimal("1"), None, test_actor_id)

    def test_expected_version_mismatch(self, ledger, session, eggs, test_actor_id):
        with pytest.raises(StockConflictError) as exc_info:
            ledger.record_adjustment(
                eggs.id, Decimal("1"), None, test_actor_id, expected_version=eggs.version + 5
            )
        session.rollback()

        assert exc_info.value.actual_version == eggs.version
        assert ledger.current_quantity(eggs.id) == Decimal("100")

    def test_version_bumps_on_every_adjustment(self, ledger, session, eggs, test_actor_id):
        ledger.record_adjustment(eggs.id, Decimal("1"), None, test_actor_id, expected_version=eggs.version)
        ledger.record_adjustment(eggs.id, Decimal("1"), None, test_actor_id, expected_version=eggs.version + 1)
        session.commit()

        item = session.get(InventoryItem, eggs.id)
        assert item.version == eggs.version + 2

    def test_sequence_is_monotonic(self, ledger, session, eggs, test_actor_id):
        first = ledger.record_adjustment(eggs.id, Decimal("1"), None, test_actor_id)
        second = ledger.record_adjustment(eggs.id, Decimal("-1"), None, test_actor_id)
        session.commit()

        assert second.seq > first.seq

    def test_logs_adjustment(self, ledger, session, eggs, test_actor_id, captured_logs):
        ledger.record_adjustment(eggs.id, Decimal("5"), "Delivery", test_actor_id)
        session.commit()

        (entry,) = [r for r in captured_logs() if r["message"] == "adjustment_recorded"]
        assert entry["item_id"] == str(eggs.id)
        assert entry["actor_id"] == str(test_actor_id)
        assert entry["reason"] == "Delivery"


class TestWriteOff:
    def test_books_item_to_zero(self, ledger, session, eggs, test_actor_id):
        record = ledger.write_off(eggs.id, "Expired", test_actor_id)
        session.commit()

        assert record.amount == Decimal("-100")
        assert record.reason == "Expired"
        assert ledger.current_quantity(eggs.id) == Decimal("0")
        assert ledger.verify(eggs.id)

    def test_default_reason(self, ledger, session, eggs, test_actor_id):
        record = ledger.write_off(eggs.id, None, test_actor_id)
        assert record.reason == "Write-off"

    def test_empty_item_rejected(self, ledger, session, create_item, test_actor_id):
        empty = create_item(name="Yeast", quantity="0")
        with pytest.raises(InvalidQuantityError):
            ledger.write_off(empty.id, None, test_actor_id)


class TestListAdjustments:
    def _book(self, ledger, session, clock, item_id, actor_id, amount, reason, when):
        clock.set_time(when)
        ledger.record_adjustment(item_id, Decimal(amount), reason, actor_id)
        session.commit()

    def test_ordered_by_time_then_sequence(self, ledger, session, eggs, test_actor_id, deterministic_clock):
        for amount in ("1", "2", "3"):
            ledger.record_adjustment(eggs.id, Decimal(amount), None, test_actor_id)
        session.commit()

        records = ledger.list_adjustments(eggs.id)
        assert [r.amount for r in records] == [Decimal("100"), Decimal("1"), Decimal("2"), Decimal("3")]
        assert [r.seq for r in records] == sorted(r.seq for r in records)

    def test_date_range(self, ledger, session, eggs, test_actor_id, deterministic_clock):
        self._book(ledger, session, deterministic_clock, eggs.id, test_actor_id, "5", "Delivery",
                   datetime(2024, 2, 1, 9, tzinfo=timezone.utc))
        self._book(ledger, session, deterministic_clock, eggs.id, test_actor_id, "-3", "Breakage",
                   datetime(2024, 3, 1, 9, tzinfo=timezone.utc))

        records = ledger.list_adjustments(eggs.id, start=date(2024, 2, 1), end=date(2024, 2, 28))
        assert [r.reason for r in records] == ["Delivery"]

    def test_end_date_covers_whole_day(self, ledger, session, eggs, test_actor_id, deterministic_clock):
        self._book(ledger, session, deterministic_clock, eggs.id, test_actor_id, "5", "Late delivery",
                   datetime(2024, 2, 1, 23, 30, tzinfo=timezone.utc))

        records = ledger.list_adjustments(eggs.id, start=date(2024, 2, 1), end=date(2024, 2, 1))
        assert [r.reason for r in records] == ["Late delivery"]

    def test_text_filter_matches_reason_case_insensitively(self, ledger, session, eggs, test_actor_id):
        ledger.record_adjustment(eggs.id, Decimal("-3"), "Breakage in transit", test_actor_id)
        session.commit()

        records = ledger.list_adjustments(text="BREAKAGE")
        assert [r.reason for r in records] == ["Breakage in transit"]

    def test_text_filter_matches_item_name(self, ledger, session, eggs, create_item, test_actor_id):
        create_item(name="Butter", quantity="10")

        records = ledger.list_adjustments(text="egg")
        assert {r.item_name for r in records} == {"Eggs"}

    def test_text_filter_ignores_date_range(self, ledger, session, eggs, test_actor_id, deterministic_clock):
        self._book(ledger, session, deterministic_clock, eggs.id, test_actor_id, "-3", "Breakage",
                   datetime(2024, 6, 1, 9, tzinfo=timezone.utc))

        records = ledger.list_adjustments(
            text="breakage", start=date(2020, 1, 1), end=date(2020, 1, 2)
        )
        assert [r.reason for r in records] == ["Breakage"]

    def test_item_type_filter(self, ledger, eggs, create_item):
        create_item(name="Boxes", unit="boxes", item_type="supplies", quantity="10")

        records = ledger.list_adjustments(item_type="supplies")
        assert {r.item_name for r in records} == {"Boxes"}


class TestReconcile:
    def test_verify_detects_and_reconcile_repairs(self, ledger, session, eggs, test_actor_id, captured_logs):
        # Corrupt the cache behind the ledger's back
        session.execute(
            update(InventoryItem)
            .where(InventoryItem.id == eggs.id)
            .values(current_quantity=Decimal("90"), version=InventoryItem.version + 1)
        )
        session.commit()
        session.expire_all()

        assert not ledger.verify(eggs.id)

        folded = ledger.reconcile(eggs.id, test_actor_id)
        session.commit()

        assert folded == Decimal("100")
        assert ledger.verify(eggs.id)
        assert any(r["message"] == "ledger_cache_diverged" for r in captured_logs())

    def test_reconcile_consistent_item_is_noop(self, ledger, session, eggs):
        assert ledger.reconcile(eggs.id) == Decimal("100")


class TestAdjustmentImmutability:
    def test_update_rejected(self, ledger, session, eggs):
        adjustment = session.execute(
            select(Adjustment).where(Adjustment.inventory_item_id == eggs.id)
        ).scalar_one()

        adjustment.amount = Decimal("1")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_rejected(self, ledger, session, eggs):
        adjustment = session.execute(
            select(Adjustment).where(Adjustment.inventory_item_id == eggs.id)
        ).scalar_one()

        session.delete(adjustment)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
