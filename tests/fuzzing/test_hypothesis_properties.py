"""
Property-based tests with Hypothesis.

Properties:
- Unit conversion to the base unit and back is lossless
- Stock value does not depend on the display unit chosen
- Stock status is monotonic in the quantity
- Any sequence of adjustments keeps the ledger fold equal to the cached
  quantity and never drives stock negative
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from bakery_kernel.domain.stock_status import StockStatus, evaluate_stock_status
from bakery_kernel.domain.units import (
    convert,
    denormalize_cost,
    from_base_unit,
    normalize_cost,
    to_base_unit,
)
from bakery_kernel.exceptions import NegativeStockError

quantities = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000000"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)
costs = st.decimals(
    min_value=Decimal("0.001"),
    max_value=Decimal("1000000"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)
display_units = st.sampled_from(["g", "kg", "ml", "l", "pcs"])

_STATUS_RANK = {StockStatus.CRITICAL: 0, StockStatus.LOW: 1, StockStatus.IN_STOCK: 2}


class TestUnitProperties:
    @given(quantity=quantities, unit=display_units)
    @settings(max_examples=200)
    def test_quantity_round_trip(self, quantity, unit):
        assert from_base_unit(to_base_unit(quantity, unit), unit) == quantity

    @given(cost=costs, unit=display_units)
    @settings(max_examples=200)
    def test_cost_round_trip(self, cost, unit):
        assert denormalize_cost(normalize_cost(cost, unit), unit) == cost

    @given(quantity=quantities, cost=costs)
    @settings(max_examples=200)
    def test_value_independent_of_display_unit(self, quantity, cost):
        # quantity kg at cost per kg is worth the same as the same stock in g
        in_grams = to_base_unit(quantity, "kg") * normalize_cost(cost, "kg")
        assert in_grams == quantity * cost

    @given(quantity=quantities)
    @settings(max_examples=100)
    def test_convert_kg_to_g_and_back(self, quantity):
        assert convert(convert(quantity, "kg", "g"), "g", "kg") == quantity


class TestStockStatusProperties:
    @given(
        low=quantities,
        high=quantities,
        minimum=quantities,
        ratio=st.decimals(min_value=Decimal("0"), max_value=Decimal("1"), places=2),
    )
    @settings(max_examples=300)
    def test_monotonic_in_quantity(self, low, high, minimum, ratio):
        if low > high:
            low, high = high, low
        assert (
            _STATUS_RANK[evaluate_stock_status(low, minimum, ratio)]
            <= _STATUS_RANK[evaluate_stock_status(high, minimum, ratio)]
        )


class TestLedgerInvariant:
    @given(amounts=st.lists(st.integers(min_value=-300, max_value=300).filter(bool), min_size=1, max_size=25))
    @settings(
        max_examples=40,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_fold_matches_cache(self, ledger, session, create_item, test_actor_id, amounts):
        item = create_item(name=f"Item {uuid4().hex}", unit="pcs", quantity="100")
        expected = Decimal("100")

        for amount in amounts:
            if expected + amount < 0:
                with pytest.raises(NegativeStockError):
                    ledger.record_adjustment(item.id, amount, "fuzz", test_actor_id)
                continue
            ledger.record_adjustment(item.id, amount, "fuzz", test_actor_id)
            expected += amount

        session.commit()
        assert ledger.current_quantity(item.id) == expected
        assert ledger.ledger_quantity(item.id) == expected
        assert ledger.verify(item.id)
