"""Inventory usage and variant resolution."""

from barstock.inventory.batch import ensure_inventory_item_for_batch_recipe
from barstock.inventory.usage import (
    HistoryRow,
    ItemReconciliation,
    format_usage,
    reconcile_reports,
    usage,
    usage_history,
)
from barstock.inventory.variants import (
    ALCOHOLIC_CATEGORIES,
    ResolveMode,
    VariantCandidate,
    VariantResolver,
    VariantState,
    build_candidates,
    inventory_ingredients,
    menu_recipes,
)

__all__ = [
    "ALCOHOLIC_CATEGORIES",
    "HistoryRow",
    "ItemReconciliation",
    "ResolveMode",
    "VariantCandidate",
    "VariantResolver",
    "VariantState",
    "build_candidates",
    "ensure_inventory_item_for_batch_recipe",
    "format_usage",
    "inventory_ingredients",
    "menu_recipes",
    "reconcile_reports",
    "usage",
    "usage_history",
]
