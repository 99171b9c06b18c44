"""Tests for the cost rollup: batch cost, unit cost and margin."""

from decimal import Decimal
from uuid import uuid4

import pytest

from bakery_engines.costing import CostRollup
from bakery_kernel.domain.dtos import IngredientStock, ProductSpec, RecipeLine
from bakery_kernel.exceptions import ItemNotFoundError

FLOUR_ID = uuid4()
BUTTER_ID = uuid4()

COSTS = [
    IngredientStock(FLOUR_ID, "Flour", "g", Decimal("5000"), Decimal("12")),
    IngredientStock(BUTTER_ID, "Butter", "g", Decimal("1000"), Decimal("30")),
]


def _product(selling_price="150", batch_size=10):
    return ProductSpec(
        product_id=uuid4(),
        name="Croissant",
        batch_size=batch_size,
        selling_price=Decimal(selling_price),
        recipe=(
            RecipeLine(FLOUR_ID, Decimal("100")),
            RecipeLine(BUTTER_ID, Decimal("10")),
        ),
    )


class TestCostRollup:
    def setup_method(self):
        self.rollup = CostRollup()

    def test_batch_and_unit_cost(self):
        cost = self.rollup.product_cost(_product(), COSTS)

        # 100 g x 12 + 10 g x 30 = 1500 per batch of 10
        assert cost.total_cost == Decimal("1500")
        assert cost.unit_cost == Decimal("150")

    def test_margin(self):
        cost = self.rollup.product_cost(_product(selling_price="200"), COSTS)

        assert cost.margin == Decimal("50")
        assert cost.margin_percent == Decimal("25")
        assert cost.is_profitable

    def test_negative_margin(self):
        cost = self.rollup.product_cost(_product(selling_price="100"), COSTS)

        assert cost.margin == Decimal("-50")
        assert cost.margin_percent == Decimal("-50")
        assert not cost.is_profitable

    def test_zero_price_has_no_margin_percent(self):
        cost = self.rollup.product_cost(_product(selling_price="0"), COSTS)

        assert cost.margin == Decimal("-150")
        assert cost.margin_percent is None

    def test_line_breakdown(self):
        cost = self.rollup.product_cost(_product(), COSTS)

        assert [line.item_name for line in cost.lines] == ["Flour", "Butter"]
        assert cost.lines[1].line_cost == Decimal("300")

    def test_empty_recipe_costs_nothing(self):
        product = ProductSpec(uuid4(), "Air", 1, Decimal("5"), ())
        cost = self.rollup.product_cost(product, [])

        assert cost.total_cost == Decimal("0")
        assert cost.margin_percent == Decimal("100")

    def test_missing_ingredient(self):
        with pytest.raises(ItemNotFoundError):
            self.rollup.product_cost(_product(), COSTS[:1])
