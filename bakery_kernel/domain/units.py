"""
Units -- Base-unit normalization for quantities and costs.

Responsibility:
    Maps a (quantity, unit) or (cost, unit) pair to and from the canonical
    base representation every stocked item is persisted in: grams for mass,
    milliliters for volume, pieces for counted goods.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Imported by the
    inventory module (form input), the production module (recipe input),
    the selectors (display values) and the engines.

Invariants enforced:
    - Quantities and costs are converted symmetrically: a quantity is
      multiplied by a unit's factor on the way in, while a cost per unit is
      divided by it (cost per kilogram / 1000 = cost per gram).
    - Round trip is exact: ``from_base_unit(to_base_unit(q, u), u) == q``
      because all arithmetic is Decimal.

Failure modes:
    - An unrecognized unit string converts as identity and logs
      ``unit_unrecognized``.  This is the only conversion that does not raise.
    - ``convert`` raises UnitMismatchError across dimensions.
    - InvalidQuantityError for values that are not numeric.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from bakery_kernel.exceptions import InvalidQuantityError, UnitMismatchError
from bakery_kernel.logging_config import get_logger

logger = get_logger("domain.units")

LARGE_UNIT_FACTOR = Decimal("1000")


class Dimension(str, Enum):
    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"


class UnitKind(Enum):
    """
    Closed set of unit kinds.

    Each member is (dimension, factor-to-base, base symbol).
    """

    MASS_LARGE = (Dimension.MASS, LARGE_UNIT_FACTOR, "g")
    MASS_SMALL = (Dimension.MASS, Decimal("1"), "g")
    VOLUME_LARGE = (Dimension.VOLUME, LARGE_UNIT_FACTOR, "ml")
    VOLUME_SMALL = (Dimension.VOLUME, Decimal("1"), "ml")
    COUNT = (Dimension.COUNT, Decimal("1"), "pcs")

    @property
    def dimension(self) -> Dimension:
        return self.value[0]

    @property
    def factor(self) -> Decimal:
        return self.value[1]

    @property
    def base_symbol(self) -> str:
        return self.value[2]

    @property
    def is_large(self) -> bool:
        return self.factor != 1


_ALIASES: dict[str, UnitKind] = {
    "kg": UnitKind.MASS_LARGE,
    "kgs": UnitKind.MASS_LARGE,
    "kilogram": UnitKind.MASS_LARGE,
    "kilograms": UnitKind.MASS_LARGE,
    "g": UnitKind.MASS_SMALL,
    "gr": UnitKind.MASS_SMALL,
    "gram": UnitKind.MASS_SMALL,
    "grams": UnitKind.MASS_SMALL,
    "l": UnitKind.VOLUME_LARGE,
    "lt": UnitKind.VOLUME_LARGE,
    "liter": UnitKind.VOLUME_LARGE,
    "liters": UnitKind.VOLUME_LARGE,
    "litre": UnitKind.VOLUME_LARGE,
    "litres": UnitKind.VOLUME_LARGE,
    "ml": UnitKind.VOLUME_SMALL,
    "milliliter": UnitKind.VOLUME_SMALL,
    "milliliters": UnitKind.VOLUME_SMALL,
    "millilitre": UnitKind.VOLUME_SMALL,
    "millilitres": UnitKind.VOLUME_SMALL,
    "pcs": UnitKind.COUNT,
    "pc": UnitKind.COUNT,
    "piece": UnitKind.COUNT,
    "pieces": UnitKind.COUNT,
    "pair": UnitKind.COUNT,
    "pairs": UnitKind.COUNT,
    "bottles": UnitKind.COUNT,
    "bags": UnitKind.COUNT,
    "boxes": UnitKind.COUNT,
}

_LARGE_SYMBOL: dict[Dimension, str] = {
    Dimension.MASS: "kg",
    Dimension.VOLUME: "l",
}


def to_decimal(value: Decimal | int | str | float, field: str = "quantity") -> Decimal:
    """Coerce a numeric input to a finite Decimal (floats go through ``str``)."""
    if isinstance(value, bool):
        raise InvalidQuantityError(field, value, "not a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip().replace(",", ""))
        except (InvalidOperation, ValueError) as e:
            raise InvalidQuantityError(field, value, "not a number") from e
    # NaN, sNaN and Infinity parse but cannot be compared or stored
    if not result.is_finite():
        raise InvalidQuantityError(field, value, "not a finite number")
    return result


def parse_unit(unit: str | None) -> UnitKind | None:
    """Resolve a unit string to its kind, or None when unrecognized."""
    if unit is None:
        return None
    return _ALIASES.get(unit.strip().lower())


def _kind_or_warn(unit: str | None) -> UnitKind | None:
    kind = parse_unit(unit)
    if kind is None:
        logger.warning("unit_unrecognized", extra={"unit": unit})
    return kind


def is_known_unit(unit: str | None) -> bool:
    return parse_unit(unit) is not None


def to_base_unit(quantity: Decimal | int | str, unit: str) -> Decimal:
    """Quantity entered in ``unit`` -> quantity in the base unit."""
    value = to_decimal(quantity)
    kind = _kind_or_warn(unit)
    if kind is None:
        return value
    return value * kind.factor


def from_base_unit(base_quantity: Decimal | int | str, unit: str) -> Decimal:
    """Quantity in the base unit -> quantity expressed in ``unit``."""
    value = to_decimal(base_quantity)
    kind = _kind_or_warn(unit)
    if kind is None:
        return value
    return value / kind.factor


def normalize_cost(display_cost: Decimal | int | str, unit: str) -> Decimal:
    """Cost per ``unit`` -> cost per base unit."""
    value = to_decimal(display_cost, field="cost")
    kind = _kind_or_warn(unit)
    if kind is None:
        return value
    return value / kind.factor


def denormalize_cost(base_cost: Decimal | int | str, unit: str) -> Decimal:
    """Cost per base unit -> cost per ``unit``."""
    value = to_decimal(base_cost, field="cost")
    kind = _kind_or_warn(unit)
    if kind is None:
        return value
    return value * kind.factor


def base_unit_of(unit: str) -> str:
    """Base symbol (g, ml, pcs) for a unit; unrecognized units map to themselves."""
    kind = parse_unit(unit)
    return kind.base_symbol if kind is not None else unit


def same_dimension(unit_a: str, unit_b: str) -> bool:
    """True when both units are recognized and measure the same thing."""
    a, b = parse_unit(unit_a), parse_unit(unit_b)
    return a is not None and b is not None and a.dimension == b.dimension


def convert(quantity: Decimal | int | str, from_unit: str, to_unit: str) -> Decimal:
    """
    Convert a quantity between two units of the same dimension.

    Goes through the base unit. Identical unit strings, or any
    unrecognized unit, convert as identity (the latter with a warning).
    """
    value = to_decimal(quantity)
    if from_unit.strip().lower() == to_unit.strip().lower():
        return value
    src, dst = _kind_or_warn(from_unit), _kind_or_warn(to_unit)
    if src is None or dst is None:
        return value
    if src.dimension != dst.dimension:
        raise UnitMismatchError(from_unit, to_unit)
    return value * src.factor / dst.factor


def humanize_quantity(base_quantity: Decimal | int | str, unit: str) -> tuple[Decimal, str]:
    """
    Pick a readable unit for a base-unit quantity.

    Mass and volume quantities of 1000 or more are shown in kg / l, smaller
    ones in g / ml.  Count units are returned unchanged.
    """
    value = to_decimal(base_quantity)
    kind = parse_unit(unit)
    if kind is None or kind.dimension == Dimension.COUNT:
        return value, unit
    if abs(value) >= LARGE_UNIT_FACTOR:
        return value / LARGE_UNIT_FACTOR, _LARGE_SYMBOL[kind.dimension]
    return value, kind.base_symbol
