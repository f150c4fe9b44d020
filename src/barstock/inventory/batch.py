"""Keeping bottled batch recipes stocked as inventory items."""

from collections.abc import Sequence

from barstock.logging_config import get_logger
from barstock.schemas import Ingredient, InventoryItem, ProductVariant, Recipe, parse_records
from barstock.store import DataStore, Entity

logger = get_logger(__name__)


async def ensure_inventory_item_for_batch_recipe(
    store: DataStore,
    recipe: Recipe,
    ingredients: Sequence[Ingredient],
    account_id: str,
) -> InventoryItem | None:
    """
    Make sure a bottled batch recipe has an ingredient, variant and inventory item.

    Missing pieces are created; an existing inventory item gets its label
    and colors refreshed. Nothing happens unless the recipe's inventory
    bottle is enabled with a size.

    Args:
        store: Record store.
        recipe: Batch recipe.
        ingredients: Known ingredients, searched for the recipe's batch ingredient.
        account_id: Account whose inventory holds the bottle.

    Returns:
        The created or updated inventory item, or None when not applicable.
    """
    bottle = recipe.settings.inventory_bottle
    if not account_id or bottle is None or not bottle.enabled or not bottle.size_ml:
        return None

    size_ml = bottle.size_ml
    label = bottle.label or recipe.name
    colors = list(bottle.colors)

    ingredient = next((i for i in ingredients if i.sub_recipe_id == recipe.id), None)
    if ingredient is None:
        logger.info(f"Creating batch ingredient for recipe {recipe.name!r}")
        row = await store.create(
            Entity.INGREDIENT,
            {
                "name": recipe.name,
                "category": recipe.category or "Batch",
                "ingredient_type": "sub_recipe",
                "sub_recipe_id": recipe.id,
                "unit": "bottle",
                "description": f"Batch ingredient for {recipe.name}",
            },
        )
        ingredient = Ingredient.model_validate(row)

    variants = parse_records(
        ProductVariant,
        await store.filter(Entity.PRODUCT_VARIANT, ingredient_id=ingredient.id),
    )
    variant = next((v for v in variants if v.size_ml == size_ml), None)
    if variant is None:
        row = await store.create(
            Entity.PRODUCT_VARIANT,
            {
                "ingredient_id": ingredient.id,
                "size_ml": size_ml,
                "purchase_quantity": 1,
                "purchase_unit": "bottle",
                "purchase_price": 0,
            },
        )
        variant = ProductVariant.model_validate(row)

    items = await store.filter(
        Entity.INVENTORY_ITEM, product_variant_id=variant.id, account_id=account_id
    )
    if items:
        row = await store.update(
            Entity.INVENTORY_ITEM,
            items[0]["id"],
            {"bottle_label": label, "bottle_colors": colors},
        )
    else:
        row = await store.create(
            Entity.INVENTORY_ITEM,
            {
                "product_variant_id": variant.id,
                "ingredient_id": ingredient.id,
                "account_id": account_id,
                "current_stock": 0,
                "unit": "bottle",
                "bottle_label": label,
                "bottle_colors": colors,
            },
        )
    return InventoryItem.model_validate(row)
