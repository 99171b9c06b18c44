"""
Unit tests for base-unit normalization.

Verifies:
- Quantity conversion in and out of base units
- Cost normalization mirrors quantity conversion
- Same-dimension conversion and dimension mismatch
- Unrecognized units fall back to identity with a warning
- Presentation scaling to kg / l
"""

from decimal import Decimal

import pytest

from bakery_kernel.domain.units import (
    Dimension,
    UnitKind,
    base_unit_of,
    convert,
    denormalize_cost,
    from_base_unit,
    humanize_quantity,
    is_known_unit,
    normalize_cost,
    parse_unit,
    same_dimension,
    to_base_unit,
    to_decimal,
)
from bakery_kernel.exceptions import InvalidQuantityError, UnitMismatchError, ValidationError


class TestParseUnit:
    @pytest.mark.parametrize(
        "unit, kind",
        [
            ("kg", UnitKind.MASS_LARGE),
            ("KG", UnitKind.MASS_LARGE),
            (" Kilogram ", UnitKind.MASS_LARGE),
            ("g", UnitKind.MASS_SMALL),
            ("l", UnitKind.VOLUME_LARGE),
            ("Litre", UnitKind.VOLUME_LARGE),
            ("ml", UnitKind.VOLUME_SMALL),
            ("pcs", UnitKind.COUNT),
            ("pair", UnitKind.COUNT),
            ("bottles", UnitKind.COUNT),
        ],
    )
    def test_known_aliases(self, unit, kind):
        assert parse_unit(unit) is kind
        assert is_known_unit(unit)

    def test_unknown_unit(self):
        assert parse_unit("furlong") is None
        assert not is_known_unit("furlong")
        assert parse_unit(None) is None

    def test_kind_properties(self):
        assert UnitKind.MASS_LARGE.dimension == Dimension.MASS
        assert UnitKind.MASS_LARGE.factor == Decimal("1000")
        assert UnitKind.MASS_LARGE.base_symbol == "g"
        assert UnitKind.MASS_LARGE.is_large
        assert not UnitKind.COUNT.is_large


class TestQuantityConversion:
    def test_kilograms_to_grams(self):
        assert to_base_unit(Decimal("5"), "kg") == Decimal("5000")

    def test_liters_to_milliliters(self):
        assert to_base_unit("1.5", "l") == Decimal("1500")

    def test_small_units_are_identity(self):
        assert to_base_unit(Decimal("250"), "g") == Decimal("250")
        assert to_base_unit(Decimal("250"), "ml") == Decimal("250")
        assert to_base_unit(12, "pcs") == Decimal("12")

    def test_from_base(self):
        assert from_base_unit(Decimal("5000"), "kg") == Decimal("5")
        assert from_base_unit(Decimal("750"), "ml") == Decimal("750")

    def test_round_trip_exact(self):
        value = Decimal("0.001")
        assert from_base_unit(to_base_unit(value, "kg"), "kg") == value

    def test_string_and_int_inputs(self):
        assert to_base_unit("2", "kg") == Decimal("2000")
        assert to_base_unit(2, "kg") == Decimal("2000")

    def test_float_goes_through_str(self):
        assert to_base_unit(0.1, "kg") == Decimal("100.0")

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidQuantityError):
            to_base_unit("lots", "kg")

    def test_bool_rejected(self):
        with pytest.raises(InvalidQuantityError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", "-inf", Decimal("NaN"), Decimal("Infinity"), float("inf")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(InvalidQuantityError) as exc_info:
            to_decimal(value, field="current_quantity")
        assert exc_info.value.field == "current_quantity"


class TestCostConversion:
    def test_cost_per_kg_to_cost_per_gram(self):
        assert normalize_cost(Decimal("12000"), "kg") == Decimal("12")

    def test_cost_per_liter_to_cost_per_ml(self):
        assert normalize_cost(Decimal("3000"), "l") == Decimal("3")

    def test_denormalize(self):
        assert denormalize_cost(Decimal("12"), "kg") == Decimal("12000")

    def test_count_cost_unchanged(self):
        assert normalize_cost(Decimal("50"), "pcs") == Decimal("50")

    def test_value_is_preserved(self):
        """quantity x cost is the same in display and base units."""
        quantity, cost = Decimal("5"), Decimal("12000")
        assert to_base_unit(quantity, "kg") * normalize_cost(cost, "kg") == quantity * cost


class TestConvert:
    def test_kg_to_g(self):
        assert convert(Decimal("0.2"), "kg", "g") == Decimal("200")

    def test_g_to_kg(self):
        assert convert(Decimal("200"), "g", "kg") == Decimal("0.2")

    def test_same_unit(self):
        assert convert("3", "pcs", "pcs") == Decimal("3")

    def test_cross_dimension_rejected(self):
        with pytest.raises(UnitMismatchError) as exc_info:
            convert(Decimal("1"), "kg", "ml")
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.code == "UNIT_MISMATCH"

    def test_same_dimension(self):
        assert same_dimension("kg", "g")
        assert not same_dimension("kg", "l")
        assert not same_dimension("kg", "furlong")

    def test_base_unit_of(self):
        assert base_unit_of("kg") == "g"
        assert base_unit_of("l") == "ml"
        assert base_unit_of("pair") == "pcs"
        assert base_unit_of("furlong") == "furlong"


class TestUnrecognizedUnit:
    def test_identity_with_warning(self, captured_logs):
        assert to_base_unit(Decimal("7"), "furlong") == Decimal("7")
        assert normalize_cost(Decimal("7"), "furlong") == Decimal("7")

        warnings = [r for r in captured_logs() if r["message"] == "unit_unrecognized"]
        assert len(warnings) == 2
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["unit"] == "furlong"


class TestHumanizeQuantity:
    def test_large_mass_shown_in_kg(self):
        assert humanize_quantity(Decimal("1500"), "g") == (Decimal("1.5"), "kg")

    def test_threshold_is_inclusive(self):
        assert humanize_quantity(Decimal("1000"), "ml") == (Decimal("1"), "l")

    def test_small_mass_stays_in_grams(self):
        assert humanize_quantity(Decimal("999"), "kg") == (Decimal("999"), "g")

    def test_count_unchanged(self):
        assert humanize_quantity(Decimal("5000"), "pcs") == (Decimal("5000"), "pcs")
