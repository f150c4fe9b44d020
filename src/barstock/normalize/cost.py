"""Cost normalization: purchase pricing to canonical cost per unit."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from barstock.logging_config import get_logger
from barstock.normalize.units import (
    ML_PER_OZ,
    is_liquid_unit,
    is_weight_unit,
    normalize_unit,
    to_canonical_ounces,
    to_milliliters,
    to_number,
    variant_size_ounces,
    weight_to_ounces,
)

if TYPE_CHECKING:
    from barstock.schemas import Ingredient, ProductVariant

logger = get_logger(__name__)

COST_DECIMALS = 4


@dataclass(frozen=True)
class CostResult:
    """Canonical cost of one unit of an ingredient."""

    cost_per_unit: float
    canonical_unit: str | None


def normalize_cost(
    purchase_price: Any,
    purchase_quantity: Any,
    purchase_unit: str | None,
) -> CostResult:
    """
    Convert a purchase price/quantity/unit into a canonical cost per unit.

    Liquids are priced per ounce; everything else per purchase unit. A
    non-positive (or unparseable) price or quantity yields a zero cost and
    leaves the unit untouched.
    """
    price = to_number(purchase_price) or 0.0
    quantity = to_number(purchase_quantity) or 0.0

    if price <= 0 or quantity <= 0:
        return CostResult(cost_per_unit=0.0, canonical_unit=purchase_unit)

    if is_liquid_unit(purchase_unit):
        total_oz = to_canonical_ounces(quantity, purchase_unit)
        cost = price / total_oz if total_oz > 0 else 0.0
        logger.debug(f"Liquid cost: {price} / {total_oz} oz = {cost} per oz")
        return CostResult(cost_per_unit=round(cost, COST_DECIMALS), canonical_unit="oz")

    cost = price / quantity
    logger.debug(f"Unit cost: {price} / {quantity} {purchase_unit} = {cost}")
    return CostResult(cost_per_unit=round(cost, COST_DECIMALS), canonical_unit=purchase_unit)


# =============================================================================
# Variant pricing
# =============================================================================


def effective_bottle_price(variant: "ProductVariant") -> float:
    """
    Price of a single bottle of a variant.

    With case pricing enabled the case price is spread over the bottles in the
    case; otherwise the listed bottle price is used.
    """
    if variant.use_case_pricing:
        case_price = variant.case_price or 0.0
        per_case = variant.bottles_per_case or 0.0
        if case_price > 0 and per_case > 0:
            return case_price / per_case
    return max(variant.purchase_price or 0.0, 0.0)


def variant_cost_per_ounce(variant: "ProductVariant") -> float:
    """Bottle price divided by bottle size in ounces; 0 if either is missing."""
    price = effective_bottle_price(variant)
    size_oz = variant_size_ounces(variant.size_ml)
    if price <= 0 or size_oz <= 0:
        return 0.0
    return price / size_oz


def variant_cost_per_unit(variant: "ProductVariant") -> CostResult | None:
    """
    Cost of one canonical unit bought through this variant.

    Liquid purchase units are priced per fluid ounce, g/kg/lb per weight
    ounce, anything else per purchase unit. The cheaper of bottle and
    per-bottle case price applies. None when the variant cannot be priced.
    """
    price = variant.purchase_price or 0.0
    if variant.case_price and variant.bottles_per_case:
        case_unit_price = variant.case_price / variant.bottles_per_case
        if case_unit_price > 0:
            price = min(price, case_unit_price) if price > 0 else case_unit_price
    if price <= 0:
        return None

    quantity = variant.purchase_quantity or 0.0
    unit = variant.purchase_unit
    unit_key = normalize_unit(unit)

    if is_liquid_unit(unit) or unit_key == "gal":
        total_ml = to_milliliters(quantity, unit) or 0.0
        total_oz = total_ml / ML_PER_OZ
        if total_oz <= 0:
            return None
        return CostResult(price / total_oz, "oz")

    if is_weight_unit(unit):
        weight_oz = weight_to_ounces(quantity, unit)
        if weight_oz <= 0:
            return None
        return CostResult(price / weight_oz, "oz")

    if quantity <= 0:
        return None
    return CostResult(price / quantity, unit)


def cheapest_variant_cost(variants: list["ProductVariant"]) -> CostResult | None:
    """Lowest cost per unit across variants, rounded for storage."""
    best: CostResult | None = None
    for variant in variants:
        result = variant_cost_per_unit(variant)
        if result is None:
            continue
        if best is None or result.cost_per_unit < best.cost_per_unit:
            best = result
    if best is None:
        return None
    return CostResult(round(best.cost_per_unit, COST_DECIMALS), best.canonical_unit)


# =============================================================================
# Pour cost
# =============================================================================


def cost_per_ounce_for(ingredient: "Ingredient") -> float:
    """Ingredient cost per fluid ounce, from its stored canonical unit."""
    cost = ingredient.cost_per_unit or 0.0
    if cost <= 0:
        return 0.0
    base_unit = (ingredient.unit or "oz").strip()
    if base_unit in ("oz", "fl oz"):
        return cost
    if base_unit == "ml":
        return cost * ML_PER_OZ
    if base_unit == "L":
        return cost / 1000 * ML_PER_OZ
    return 0.0


def default_pour_size(category: str | None) -> float:
    """Typical pour in ounces for an ingredient category."""
    cat = (category or "").lower()
    if cat == "wine":
        return 5.0
    if cat == "beer":
        return 12.0
    if "spirit" in cat or "liquor" in cat:
        return 1.5
    return 1.0


def pour_cost(ingredient: "Ingredient", pour_size: Any) -> float:
    """Cost of one pour of the given size (ounces, or pieces for piece units)."""
    size = to_number(pour_size) or 0.0
    if (ingredient.unit or "oz") == "piece":
        return (ingredient.cost_per_unit or 0.0) * size
    return cost_per_ounce_for(ingredient) * size


def suggested_menu_price(cost: float, target_pour_cost_pct: Any) -> float | None:
    """Menu price that hits the target pour cost percentage."""
    target = to_number(target_pour_cost_pct) or 0.0
    if cost <= 0 or target <= 0:
        return None
    return round(cost / (target / 100), 2)


def pour_cost_percent(cost: float, menu_price: Any) -> float | None:
    """Pour cost as a percentage of the menu price."""
    price = to_number(menu_price) or 0.0
    if cost <= 0 or price <= 0:
        return None
    return round(cost / price * 100, 2)
