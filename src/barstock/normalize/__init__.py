"""Unit conversion and cost normalization."""

from barstock.normalize.cost import (
    CostResult,
    cheapest_variant_cost,
    default_pour_size,
    effective_bottle_price,
    normalize_cost,
    pour_cost,
    suggested_menu_price,
    variant_cost_per_ounce,
    variant_cost_per_unit,
)
from barstock.normalize.units import (
    format_bottle_size,
    is_liquid_unit,
    to_canonical_ounces,
    to_milliliters,
    variant_size_ounces,
)

__all__ = [
    "CostResult",
    "cheapest_variant_cost",
    "default_pour_size",
    "effective_bottle_price",
    "format_bottle_size",
    "is_liquid_unit",
    "normalize_cost",
    "pour_cost",
    "suggested_menu_price",
    "to_canonical_ounces",
    "to_milliliters",
    "variant_cost_per_ounce",
    "variant_cost_per_unit",
    "variant_size_ounces",
]
