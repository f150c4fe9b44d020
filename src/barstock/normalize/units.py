"""Unit normalization and conversion utilities.

All purchase and recipe quantities are compared in ounces. Conversions never
raise: malformed amounts collapse to zero and unknown units pass the amount
through unchanged.
"""

from typing import Any

from barstock.logging_config import get_logger

logger = get_logger(__name__)

ML_PER_OZ = 29.5735
G_PER_OZ = 28.3495


# =============================================================================
# Unit Conversion Tables
# =============================================================================

# Factor to canonical ounces (fluid ounces for volume, weight-as-if-water for g)
OUNCE_FACTORS: dict[str, float] = {
    "oz": 1.0,
    "fl oz": 1.0,
    "ml": 1 / ML_PER_OZ,
    "cl": 10 / ML_PER_OZ,
    "l": 1000 / ML_PER_OZ,
    "qt": 32.0,
    "dash": 0.625 / ML_PER_OZ,
    "barspoon": 5 / ML_PER_OZ,
    "tsp": 5 / ML_PER_OZ,
    "tbsp": 15 / ML_PER_OZ,
    "cup": 236.588 / ML_PER_OZ,
    "g": 1 / G_PER_OZ,
}

# Units a purchase price can be spread over as fluid ounces
LIQUID_UNITS: frozenset[str] = frozenset({"ml", "cl", "l", "oz", "fl oz", "qt"})

# Volume conversions (base unit: ml)
ML_FACTORS: dict[str, float] = {
    "ml": 1.0,
    "cl": 10.0,
    "l": 1000.0,
    "oz": ML_PER_OZ,
    "fl oz": ML_PER_OZ,
    "cup": 236.588,
    "pt": 473.176,
    "qt": 946.353,
    "gal": 3785.41,
    "tsp": 4.92892,
    "tbsp": 14.7868,
    "dash": 0.616115,
    "barspoon": 5.0,
}

# Weight conversions (base unit: g)
GRAM_FACTORS: dict[str, float] = {
    "g": 1.0,
    "kg": 1000.0,
    "lb": 453.592,
}


# =============================================================================
# Parsing helpers
# =============================================================================


def to_number(value: Any) -> float | None:
    """Parse a number the lenient way stored records need; None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def normalize_unit(unit: Any) -> str:
    """Lowercase and trim a unit label; non-strings become empty."""
    if not isinstance(unit, str):
        return ""
    return unit.strip().lower()


# =============================================================================
# Conversions
# =============================================================================


def to_canonical_ounces(amount: Any, unit: Any) -> float:
    """
    Convert an amount in the given unit to ounces.

    Unrecognized units return the amount unchanged (treated as already
    canonical). Missing units and non-numeric amounts return 0.
    """
    number = to_number(amount)
    if number is None or not number:
        return 0.0

    unit_key = normalize_unit(unit)
    if not unit_key:
        return 0.0

    factor = OUNCE_FACTORS.get(unit_key)
    if factor is None:
        return number
    return number * factor


def is_liquid_unit(unit: Any) -> bool:
    """Check whether a purchase unit is a liquid volume unit."""
    return normalize_unit(unit) in LIQUID_UNITS


def is_weight_unit(unit: Any) -> bool:
    """Check whether a unit is a weight unit."""
    return normalize_unit(unit) in GRAM_FACTORS


def to_milliliters(amount: Any, unit: Any) -> float | None:
    """
    Convert a volume to milliliters.

    Returns None when the unit is not a volume unit or the amount is not a
    non-negative number.
    """
    number = to_number(amount)
    if number is None or number < 0:
        return None
    factor = ML_FACTORS.get(normalize_unit(unit))
    if factor is None:
        return None
    return number * factor


def weight_to_ounces(amount: Any, unit: Any) -> float:
    """Convert g/kg/lb to weight ounces; 0 for anything else."""
    number = to_number(amount)
    factor = GRAM_FACTORS.get(normalize_unit(unit))
    if number is None or factor is None:
        return 0.0
    return number * factor / G_PER_OZ


def convert_units(
    amount: Any,
    from_unit: Any,
    to_unit: Any,
    oz_interpretation: str = "auto",
) -> float | None:
    """
    Convert between two volume units or two weight units.

    A bare "oz" is a fluid ounce under "fluid", a weight ounce under
    "weight", and under "auto" whichever fits the other unit. Returns None
    when the units cannot be converted or the amount is not numeric.
    """
    number = to_number(amount)
    if number is None:
        return None
    src, dst = normalize_unit(from_unit), normalize_unit(to_unit)
    if src == dst:
        return number

    volume = ML_FACTORS
    if oz_interpretation == "weight":
        volume = {u: f for u, f in ML_FACTORS.items() if u != "oz"}
    if src in volume and dst in volume:
        return number * volume[src] / volume[dst]

    weight = GRAM_FACTORS
    if oz_interpretation != "fluid":
        weight = {**GRAM_FACTORS, "oz": G_PER_OZ}
    if src in weight and dst in weight:
        return number * weight[src] / weight[dst]
    return None


def variant_size_ounces(size_ml: Any) -> float:
    """
    Ounces in one bottle of a product variant.

    Sizes below 10 were entered in liters and are scaled to milliliters first.
    """
    size = to_number(size_ml)
    if size is None or size <= 0:
        return 0.0
    actual_ml = size * 1000 if size < 10 else size
    return actual_ml / ML_PER_OZ


def format_bottle_size(size_ml: Any) -> str:
    """Human-readable bottle size ("1.75L", "750ml")."""
    size = to_number(size_ml)
    if size is None:
        return "-"
    if size < 10:
        return f"{size:g}L"
    return f"{size:g}ml"
