"""Ingredient persistence: saving with derived costs, renames, duplicates and merges."""

import re
from collections.abc import Sequence
from typing import Any

from barstock.config import get_settings
from barstock.logging_config import get_logger
from barstock.matching.similarity import DuplicateGroup, find_duplicate_groups
from barstock.normalize.cost import cheapest_variant_cost, normalize_cost
from barstock.normalize.units import to_milliliters, to_number
from barstock.schemas import Ingredient, ProductVariant, Recipe, parse_records
from barstock.services.bulk import BulkResult, run_in_chunks
from barstock.services.recipe_json import validate_recipe_ingredients
from barstock.store import DataStore, Entity

logger = get_logger(__name__)

DEFAULT_PURCHASE_UNIT = "piece"


def title_case(text: str | None) -> str:
    """Capitalize the first letter of each word and lowercase the rest."""
    if not text:
        return ""
    return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)


def _normalize_name(name: str | None) -> str:
    return (name or "").strip().lower()


def _is_complete_prep_action(action: Any) -> bool:
    return (
        isinstance(action, dict)
        and bool(action.get("name"))
        and bool(action.get("yield_amount"))
        and bool(action.get("yield_unit"))
    )


def clean_ingredient_payload(data: dict[str, Any]) -> dict[str, Any]:
    """
    Prepare ingredient fields for storage.

    Title-cases the name, keeps only complete prep actions and drops fields
    that are None or empty strings.
    """
    payload = dict(data)
    payload["name"] = title_case((payload.get("name") or "").strip())
    payload["prep_actions"] = [
        a for a in payload.get("prep_actions") or [] if _is_complete_prep_action(a)
    ]
    return {k: v for k, v in payload.items() if v is not None and v != ""}


def purchase_defaults(data: dict[str, Any]) -> dict[str, Any]:
    """Purchase fields with missing values defaulted: price 0, quantity 1, unit "piece"."""
    return {
        "purchase_price": to_number(data.get("purchase_price")) or 0.0,
        "purchase_quantity": to_number(data.get("purchase_quantity")) or 1.0,
        "purchase_unit": data.get("purchase_unit") or DEFAULT_PURCHASE_UNIT,
    }


def is_rename(original_name: str | None, new_name: str | None) -> bool:
    """True when an edited ingredient's title-cased name changed."""
    return bool(original_name) and title_case(original_name) != title_case(new_name)


def _variant_payload(ingredient_id: str, variant: dict[str, Any]) -> dict[str, Any]:
    quantity = to_number(variant.get("purchase_quantity"))
    unit = variant.get("purchase_unit")
    payload = {
        "ingredient_id": ingredient_id,
        "size_ml": to_milliliters(quantity, unit),
        "purchase_quantity": quantity,
        "purchase_unit": unit,
        "purchase_price": to_number(variant.get("purchase_price")),
        "case_price": to_number(variant.get("case_price")),
        "bottles_per_case": to_number(variant.get("bottles_per_case")),
        "use_case_pricing": bool(variant.get("use_case_pricing", False)),
        "sku_number": variant.get("sku_number") or None,
    }
    for optional in ("tier", "exclusive", "bottle_image_url"):
        if variant.get(optional) is not None:
            payload[optional] = variant[optional]
    return payload


# =============================================================================
# Save
# =============================================================================


async def save_ingredient(
    store: DataStore,
    data: dict[str, Any],
    original_name: str | None = None,
    variants: Sequence[dict[str, Any]] | None = None,
    propagate_renames: bool = True,
) -> Ingredient:
    """
    Create or update an ingredient with its derived cost.

    Without variants the cost comes from the ingredient's own purchase
    fields. With variants, stored variants missing from the list are
    deleted, the rest created or updated, and the cheapest variant sets
    the ingredient's cost_per_unit and unit. Renaming an existing
    ingredient rewrites recipe references to the new name unless
    ``propagate_renames`` is off, for callers that queue the rewrite.

    Args:
        store: Record store.
        data: Ingredient fields; an "id" updates the existing record.
        original_name: Name before editing, used to detect renames.
        variants: Product variant fields for this ingredient.
        propagate_renames: Rewrite recipe references inline after a rename.

    Returns:
        The saved ingredient.
    """
    payload = clean_ingredient_payload(data)
    if not payload.get("name"):
        raise ValueError("Ingredient name is required")
    ingredient_id = payload.pop("id", None)

    if not variants:
        payload.update(purchase_defaults(data))
        cost = normalize_cost(
            payload["purchase_price"], payload["purchase_quantity"], payload["purchase_unit"]
        )
        payload["cost_per_unit"] = cost.cost_per_unit
        payload["unit"] = cost.canonical_unit

    if ingredient_id:
        row = await store.update(Entity.INGREDIENT, ingredient_id, payload)
        if propagate_renames and is_rename(original_name, payload["name"]):
            await update_recipes_with_new_ingredient_name(
                store, title_case(original_name), payload["name"]
            )
    else:
        row = await store.create(Entity.INGREDIENT, payload)
        ingredient_id = row["id"]
        logger.info(f"Created ingredient {payload['name']!r}")

    if variants:
        row = await _save_variants(store, ingredient_id, variants) or row

    return Ingredient.model_validate(row)


async def _save_variants(
    store: DataStore,
    ingredient_id: str,
    variants: Sequence[dict[str, Any]],
) -> dict[str, Any] | None:
    existing = await store.filter(Entity.PRODUCT_VARIANT, ingredient_id=ingredient_id)
    existing_ids = {v["id"] for v in existing}
    keep_ids = {v["id"] for v in variants if v.get("id")}

    for stale_id in existing_ids - keep_ids:
        await store.delete(Entity.PRODUCT_VARIANT, stale_id)

    saved: list[ProductVariant] = []
    for variant in variants:
        payload = _variant_payload(ingredient_id, variant)
        if variant.get("id") in existing_ids:
            row = await store.update(Entity.PRODUCT_VARIANT, variant["id"], payload)
        else:
            row = await store.create(Entity.PRODUCT_VARIANT, payload)
        saved.append(ProductVariant.model_validate(row))

    best = cheapest_variant_cost(saved)
    if best is None:
        logger.warning(f"No priceable variant for ingredient {ingredient_id}")
        return None
    return await store.update(
        Entity.INGREDIENT,
        ingredient_id,
        {"cost_per_unit": best.cost_per_unit, "unit": best.canonical_unit},
    )


# =============================================================================
# Rename propagation
# =============================================================================


def _rename_lines(
    recipe: Recipe, old_keys: set[str], new_name: str
) -> list[dict[str, Any]] | None:
    changed = False
    lines = []
    for line in recipe.ingredients:
        data = line.model_dump(exclude_unset=True)
        if _normalize_name(line.ingredient_name) in old_keys:
            data["ingredient_name"] = new_name
            changed = True
        lines.append(data)
    return lines if changed else None


async def _rewrite_recipe_references(
    store: DataStore,
    old_names: Sequence[str],
    new_name: str,
    chunk_size: int | None = None,
) -> BulkResult:
    recipes = parse_records(Recipe, await store.list(Entity.RECIPE))
    old_keys = {_normalize_name(n) for n in old_names} - {""}

    updates: list[tuple[Recipe, list[dict[str, Any]]]] = []
    for recipe in recipes:
        lines = _rename_lines(recipe, old_keys, new_name)
        if lines is not None:
            updates.append((recipe, lines))

    async def write(update: tuple[Recipe, list[dict[str, Any]]]) -> str:
        recipe, lines = update
        await store.update(
            Entity.RECIPE, recipe.id, {"ingredients": validate_recipe_ingredients(lines)}
        )
        return recipe.id

    return await run_in_chunks(updates, write, chunk_size=chunk_size, label="recipe update")


async def update_recipes_with_new_ingredient_name(
    store: DataStore,
    old_name: str,
    new_name: str,
    chunk_size: int | None = None,
) -> BulkResult:
    """
    Point recipe lines that use ``old_name`` at ``new_name``.

    Names compare trimmed and case-insensitively; nothing happens when they
    are the same after that. Only recipes that change are written, and a
    failed write is counted rather than raised.
    """
    if _normalize_name(old_name) == _normalize_name(new_name):
        logger.info(f"Ingredient name {old_name!r} unchanged after normalization")
        return BulkResult()

    logger.info(f"Renaming ingredient references {old_name!r} -> {new_name!r}")
    result = await _rewrite_recipe_references(store, [old_name], new_name, chunk_size)
    logger.info(f"Updated {result.succeeded} recipe(s) with new ingredient name")
    return result


# =============================================================================
# Duplicates and merging
# =============================================================================


async def find_duplicates(
    store: DataStore,
    threshold: float | None = None,
) -> list[DuplicateGroup]:
    """Group stored ingredients whose names look like the same product."""
    ingredients = parse_records(Ingredient, await store.list(Entity.INGREDIENT))
    if threshold is None:
        threshold = get_settings().duplicate_similarity_threshold
    return find_duplicate_groups(ingredients, threshold)


class MergeResult:
    """Result of merging ingredients into a primary."""

    def __init__(self, primary_id: str | None = None) -> None:
        self.primary_id = primary_id
        self.merged: int = 0
        self.recipes_updated: int = 0
        self.variants_moved: int = 0
        self.inventory_items_moved: int = 0
        self.failed: int = 0
        self.errors: list[str] = []

    def add_bulk(self, result: BulkResult) -> int:
        self.failed += result.failed
        self.errors.extend(result.errors)
        return result.succeeded

    def merge(self, other: "MergeResult") -> None:
        self.merged += other.merged
        self.recipes_updated += other.recipes_updated
        self.variants_moved += other.variants_moved
        self.inventory_items_moved += other.inventory_items_moved
        self.failed += other.failed
        self.errors.extend(other.errors)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "primary_id": self.primary_id,
            "merged": self.merged,
            "recipes_updated": self.recipes_updated,
            "variants_moved": self.variants_moved,
            "inventory_items_moved": self.inventory_items_moved,
            "failed": self.failed,
            "errors": self.errors,
        }


async def merge_ingredients(
    store: DataStore,
    primary_id: str,
    secondary_ids: Sequence[str],
    chunk_size: int | None = None,
) -> MergeResult:
    """
    Fold secondary ingredients into a primary one.

    Recipe lines naming a secondary are rewritten to the primary's name,
    variants and inventory items move to the primary, secondary names
    become aliases of the primary and the secondaries are deleted. Writes
    are not transactional: a failure is counted and the rest continue.

    Raises:
        RecordNotFoundError: The primary does not exist.
        ValueError: The primary is also listed as a secondary.
    """
    result = MergeResult(primary_id)
    secondary_ids = [s for s in dict.fromkeys(secondary_ids) if s]
    if primary_id in secondary_ids:
        raise ValueError("The primary ingredient cannot also be merged into itself")
    if not secondary_ids:
        return result

    primary = Ingredient.model_validate(await store.get(Entity.INGREDIENT, primary_id))
    stored = parse_records(Ingredient, await store.list(Entity.INGREDIENT))
    all_ingredients = {i.id: i for i in stored}
    secondaries = []
    for secondary_id in secondary_ids:
        if secondary_id in all_ingredients:
            secondaries.append(all_ingredients[secondary_id])
        else:
            logger.warning(f"Secondary ingredient {secondary_id} not found, skipping")
            result.failed += 1
            result.errors.append(f"Ingredient {secondary_id} not found")

    if not secondaries:
        return result

    logger.info(f"Merging {len(secondaries)} ingredient(s) into {primary.name!r} ({primary_id})")

    recipes = await _rewrite_recipe_references(
        store, [s.name for s in secondaries], primary.name, chunk_size
    )
    result.recipes_updated = result.add_bulk(recipes)

    moved_ids = {s.id for s in secondaries}
    variants = [
        v["id"]
        for v in await store.list(Entity.PRODUCT_VARIANT)
        if v.get("ingredient_id") in moved_ids
    ]
    moved_variant_ids = set(variants)
    items = [
        i["id"]
        for i in await store.list(Entity.INVENTORY_ITEM)
        if i.get("ingredient_id") in moved_ids or i.get("product_variant_id") in moved_variant_ids
    ]

    async def move_variant(variant_id: str) -> None:
        await store.update(Entity.PRODUCT_VARIANT, variant_id, {"ingredient_id": primary_id})

    async def move_item(item_id: str) -> None:
        await store.update(Entity.INVENTORY_ITEM, item_id, {"ingredient_id": primary_id})

    result.variants_moved = result.add_bulk(
        await run_in_chunks(variants, move_variant, chunk_size=chunk_size, label="variant move")
    )
    result.inventory_items_moved = result.add_bulk(
        await run_in_chunks(items, move_item, chunk_size=chunk_size, label="inventory item move")
    )

    aliases = list(primary.aliases)
    known = {_normalize_name(a) for a in aliases} | {_normalize_name(primary.name)}
    for secondary in secondaries:
        for name in [secondary.name, *secondary.aliases]:
            if name and _normalize_name(name) not in known:
                aliases.append(name)
                known.add(_normalize_name(name))
    await store.update(Entity.INGREDIENT, primary_id, {"aliases": aliases})

    async def delete(ingredient_id: str) -> None:
        await store.delete(Entity.INGREDIENT, ingredient_id)

    deleted = await run_in_chunks(
        [s.id for s in secondaries], delete, chunk_size=chunk_size, label="ingredient delete"
    )
    result.merged = result.add_bulk(deleted)
    logger.info(f"Merge into {primary.name!r} complete: {result.to_dict()}")
    return result


async def merge_duplicate_groups(
    store: DataStore,
    groups: Sequence[tuple[str, Sequence[str]]],
    chunk_size: int | None = None,
) -> MergeResult:
    """
    Merge several groups, one after another.

    Args:
        groups: (primary id, member ids) pairs; the primary may appear among
            the members and is left out of the secondaries.

    Returns:
        Combined counts across all groups.
    """
    summary = MergeResult()
    for primary_id, member_ids in groups:
        secondary_ids = [m for m in member_ids if m != primary_id]
        if not secondary_ids:
            continue
        try:
            summary.merge(await merge_ingredients(store, primary_id, secondary_ids, chunk_size))
        except Exception as e:
            logger.error(f"Failed to merge group into {primary_id}: {e}")
            summary.failed += 1
            summary.errors.append(f"{primary_id}: {e}")
    return summary
