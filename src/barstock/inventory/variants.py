"""Choosing which product variants of an ingredient to track or order."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from barstock.logging_config import get_logger
from barstock.normalize.cost import variant_cost_per_ounce
from barstock.schemas import Ingredient, InventoryItem, Menu, ProductVariant, Recipe, parse_records
from barstock.services.bulk import BulkResult, ProgressCallback, run_in_chunks
from barstock.store import DataStore, Entity

logger = get_logger(__name__)

ALCOHOLIC_CATEGORIES = frozenset({"spirit", "liquor", "vermouth", "wine", "beer", "bitters"})


class ResolveMode(str, Enum):
    """What the chosen variants are for."""

    INVENTORY = "inventory"
    ORDER = "order"


@dataclass
class VariantState:
    """A variant as offered for selection."""

    variant: ProductVariant
    cost_per_oz: float
    is_best_value: bool = False
    is_tracked: bool = False
    selected: bool = False

    @property
    def id(self) -> str | None:
        return self.variant.id


@dataclass
class VariantCandidate:
    """An ingredient with the variants that can be picked for it."""

    ingredient: Ingredient
    variants: list[VariantState] = field(default_factory=list)

    @property
    def needs_choice(self) -> bool:
        return len(self.variants) > 1


# =============================================================================
# Ingredient selection
# =============================================================================


def menu_recipes(menu: Menu, recipes: Iterable[Recipe]) -> list[Recipe]:
    """Recipes listed in the menu's recipe order or assigned to the menu."""
    order = set(menu.recipe_order)
    return [r for r in recipes if r.id in order or (r.menu_id and r.menu_id == menu.id)]


def recipe_references(recipes: Iterable[Recipe]) -> tuple[set[str], set[str]]:
    """
    Ingredient names and batch recipe ids referenced by recipes.

    A batch-tracked recipe is stocked as its own bottle, so it contributes
    its id instead of its component ingredient names.
    """
    names: set[str] = set()
    batch_recipe_ids: set[str] = set()
    for recipe in recipes:
        if recipe.settings.is_batch_tracked:
            if recipe.id:
                batch_recipe_ids.add(recipe.id)
            continue
        for line in recipe.ingredients:
            if line.ingredient_name and line.ingredient_name.strip():
                names.add(line.ingredient_name.strip().lower())
    return names, batch_recipe_ids


def is_alcoholic(ingredient: Ingredient) -> bool:
    if ingredient.is_liquor_portfolio_item:
        return True
    return bool(ingredient.category) and ingredient.category.lower() in ALCOHOLIC_CATEGORIES


def inventory_ingredients(
    recipes: Iterable[Recipe],
    ingredients: Sequence[Ingredient],
) -> list[Ingredient]:
    """Ingredients of the recipes that are kept as bottle inventory."""
    names, batch_recipe_ids = recipe_references(recipes)
    if not names and not batch_recipe_ids:
        return []

    selected = []
    for ingredient in ingredients:
        is_batch = bool(ingredient.sub_recipe_id) and ingredient.sub_recipe_id in batch_recipe_ids
        if is_batch:
            selected.append(ingredient)
        elif ingredient.name.strip().lower() in names and is_alcoholic(ingredient):
            selected.append(ingredient)
    return selected


# =============================================================================
# Candidates
# =============================================================================


def build_candidates(
    ingredients: Iterable[Ingredient],
    variants: Sequence[ProductVariant],
    tracked_variant_ids: set[str],
    mode: ResolveMode = ResolveMode.INVENTORY,
) -> list[VariantCandidate]:
    """
    Pair ingredients with their variants and default selections.

    A single variant is preselected unless it is already tracked (inventory
    mode). Ingredients with nothing left to add are left out.
    """
    mode = ResolveMode(mode)
    by_ingredient: dict[str, list[ProductVariant]] = {}
    for variant in variants:
        if variant.ingredient_id:
            by_ingredient.setdefault(variant.ingredient_id, []).append(variant)

    candidates: list[VariantCandidate] = []
    for ingredient in ingredients:
        own = by_ingredient.get(ingredient.id or "", [])
        costs = [variant_cost_per_ounce(v) for v in own]
        positive = [c for c in costs if c > 0]
        best = min(positive) if positive else None

        states = []
        for variant, cost in zip(own, costs):
            tracked = mode is ResolveMode.INVENTORY and variant.id in tracked_variant_ids
            states.append(
                VariantState(
                    variant=variant,
                    cost_per_oz=cost,
                    is_best_value=cost > 0 and cost == best and len(own) > 1,
                    is_tracked=tracked,
                    selected=len(own) == 1 and not tracked,
                )
            )

        if not states:
            continue
        if mode is ResolveMode.INVENTORY and all(s.is_tracked for s in states):
            continue
        candidates.append(VariantCandidate(ingredient=ingredient, variants=states))

    return candidates


class VariantResolver:
    """
    Interactive variant selection for adding ingredients to inventory or an order.

    Load candidates, let the user toggle variants, then confirm. Confirming
    in inventory mode creates the inventory items; in order mode it hands the
    selection back instead.
    """

    def __init__(
        self,
        store: DataStore,
        account_id: str | None = None,
        mode: ResolveMode | str = ResolveMode.INVENTORY,
        chunk_size: int | None = None,
    ):
        self.store = store
        self.account_id = account_id
        self.mode = ResolveMode(mode)
        self.chunk_size = chunk_size
        self.candidates: list[VariantCandidate] = []

    async def load(
        self,
        ingredients: Sequence[Ingredient] | None = None,
        menu_id: str | None = None,
    ) -> list[VariantCandidate]:
        """
        Build candidates from explicit ingredients or from a menu.

        Raises:
            RecordNotFoundError: The menu does not exist.
            ValueError: Neither ingredients nor a menu were given.
        """
        if ingredients is None:
            if not menu_id:
                raise ValueError("Either ingredients or menu_id is required")
            ingredients = await self._menu_ingredients(menu_id)

        variants = parse_records(ProductVariant, await self.store.list(Entity.PRODUCT_VARIANT))

        tracked: set[str] = set()
        if self.mode is ResolveMode.INVENTORY and self.account_id:
            rows = await self.store.filter(Entity.INVENTORY_ITEM, account_id=self.account_id)
            tracked = {
                item.product_variant_id
                for item in parse_records(InventoryItem, rows)
                if item.product_variant_id
            }

        self.candidates = build_candidates(ingredients, variants, tracked, self.mode)
        logger.info(
            f"Loaded {len(self.candidates)} {self.mode.value} candidate(s), "
            f"{len(self.needs_choice)} need a choice"
        )
        return self.candidates

    async def _menu_ingredients(self, menu_id: str) -> list[Ingredient]:
        menu = Menu.model_validate(await self.store.get(Entity.MENU, menu_id))
        recipes = menu_recipes(menu, parse_records(Recipe, await self.store.list(Entity.RECIPE)))
        all_ingredients = parse_records(Ingredient, await self.store.list(Entity.INGREDIENT))
        return inventory_ingredients(recipes, all_ingredients)

    @property
    def needs_choice(self) -> list[VariantCandidate]:
        """Candidates with more than one variant to choose from."""
        return [c for c in self.candidates if c.needs_choice]

    @property
    def auto_added_count(self) -> int:
        return len(self.candidates) - len(self.needs_choice)

    def toggle(self, ingredient_id: str, variant_id: str) -> bool:
        """Flip a variant's selection and return its new state."""
        for candidate in self.candidates:
            if candidate.ingredient.id != ingredient_id:
                continue
            for state in candidate.variants:
                if state.id == variant_id:
                    state.selected = not state.selected
                    return state.selected
        raise KeyError(f"No variant {variant_id} for ingredient {ingredient_id}")

    def select_all(self) -> None:
        """Select every variant that is not tracked yet."""
        for candidate in self.candidates:
            for state in candidate.variants:
                state.selected = not state.is_tracked

    def selected_variants(self) -> list[dict[str, Any]]:
        """Selected variants annotated with their ingredient."""
        selection = []
        for candidate in self.candidates:
            for state in candidate.variants:
                if state.selected:
                    selection.append(
                        {
                            **state.variant.model_dump(),
                            "cost_per_oz": state.cost_per_oz,
                            "is_best_value": state.is_best_value,
                            "ingredient_name": candidate.ingredient.name,
                            "ingredient_id": candidate.ingredient.id,
                        }
                    )
        return selection

    def items_to_create(self) -> list[dict[str, Any]]:
        """Inventory item records for every selected, untracked variant."""
        return [
            {
                "product_variant_id": state.id,
                "ingredient_id": candidate.ingredient.id,
                "account_id": self.account_id,
                "current_stock": 0,
                "reorder_point": 0,
                "unit": "bottle",
                "location_id": None,
            }
            for candidate in self.candidates
            for state in candidate.variants
            if state.selected and not state.is_tracked
        ]

    async def confirm(
        self,
        on_progress: ProgressCallback | None = None,
    ) -> BulkResult | list[dict[str, Any]]:
        """
        Apply the selection.

        Order mode returns the annotated selection without writing. Inventory
        mode creates the items in chunks; an item that already exists is
        counted as skipped.
        """
        if self.mode is ResolveMode.ORDER:
            return self.selected_variants()

        if not self.account_id:
            raise ValueError("account_id is required to add items to inventory")

        items = self.items_to_create()

        async def create(item: dict[str, Any]) -> dict[str, Any]:
            return await self.store.create(Entity.INVENTORY_ITEM, item)

        return await run_in_chunks(
            items,
            create,
            chunk_size=self.chunk_size,
            on_progress=on_progress,
            skip_duplicates=True,
            label="inventory item create",
        )
