"""Tests for InventorySelector reports."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from bakery_kernel.domain.stock_status import StockStatus
from bakery_kernel.exceptions import ItemNotFoundError
from bakery_kernel.selectors.inventory_selector import InventorySelector


@pytest.fixture
def selector(session):
    return InventorySelector(session)


class TestStockReport:
    def test_ordered_by_name(self, selector, create_item):
        create_item(name="yeast")
        create_item(name="Butter")
        create_item(name="apricots")

        assert [row.name for row in selector.stock_report()] == ["apricots", "Butter", "yeast"]

    def test_item_type_filter(self, selector, create_item):
        create_item(name="Flour")
        create_item(name="Boxes", unit="pcs", item_type="supplies")

        rows = selector.stock_report(item_type="supplies")
        assert [row.name for row in rows] == ["Boxes"]

    def test_critical_ratio_override(self, selector, create_item):
        # 8 of min 10: LOW at ratio 0.5, CRITICAL at ratio 0.9
        create_item(name="Salt", quantity="8")

        assert selector.stock_report()[0].status is StockStatus.LOW
        assert selector.stock_report(critical_ratio=Decimal("0.9"))[0].status is StockStatus.CRITICAL

    def test_unknown_item(self, selector):
        with pytest.raises(ItemNotFoundError):
            selector.get_item_view(uuid4())


class TestLowStock:
    def test_critical_first(self, selector, create_item):
        create_item(name="Almonds", quantity="8")    # low
        create_item(name="Butter", quantity="2")     # critical
        create_item(name="Cocoa", quantity="500")    # in stock

        rows = selector.low_stock()
        assert [(row.name, row.status) for row in rows] == [
            ("Butter", StockStatus.CRITICAL),
            ("Almonds", StockStatus.LOW),
        ]


class TestValuationSummary:
    def test_totals(self, selector, flour, sugar, create_item):
        create_item(name="Yeast", quantity="0")

        summary = selector.valuation_summary()
        assert summary.item_count == 3
        assert summary.total_value == Decimal("76000")
        assert summary.status_counts[StockStatus.IN_STOCK] == 2
        assert summary.status_counts[StockStatus.CRITICAL] == 1
        assert summary.reorder_count == 1

    def test_empty(self, selector):
        summary = selector.valuation_summary()
        assert summary.item_count == 0
        assert summary.total_value == Decimal("0")


class TestIngredientUsage:
    def test_production_consumption(self, selector, production_service, bread, flour, test_actor_id, deterministic_clock):
        production_service.produce(bread.product_id, 30, test_actor_id)
        production_service.produce(bread.product_id, 10, test_actor_id)

        today = deterministic_clock.today()
        (usage,) = selector.ingredient_usage(today, today)
        assert usage.item_id == flour.id
        assert usage.used == Decimal("800")
        assert usage.available == Decimal("4200")
        assert usage.display_available == (Decimal("4.2"), "kg")

    def test_manual_adjustments_not_counted(self, selector, inventory_service, flour, test_actor_id, deterministic_clock):
        inventory_service.adjust(flour.id, "1", "kg", "subtract", "Spillage", test_actor_id)

        today = deterministic_clock.today()
        assert selector.ingredient_usage(today, today) == []

    def test_reversed_runs_not_counted(self, selector, production_service, bread, test_actor_id, deterministic_clock):
        run = production_service.produce(bread.product_id, 30, test_actor_id)
        production_service.reverse(run.id, test_actor_id)

        today = deterministic_clock.today()
        assert selector.ingredient_usage(today, today) == []

    def test_window(self, selector, production_service, bread, test_actor_id, deterministic_clock):
        production_service.produce(bread.product_id, 10, test_actor_id)

        tomorrow = deterministic_clock.today() + timedelta(days=1)
        assert selector.ingredient_usage(tomorrow, tomorrow + timedelta(days=7)) == []
        assert len(selector.ingredient_usage(date(2023, 12, 1), deterministic_clock.today())) == 1
