"""Recipe costing from ingredient costs, prep yields, sub-recipes and variants."""

import asyncio
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from barstock.logging_config import get_logger
from barstock.matching.lookup import find_matching_ingredient
from barstock.normalize.cost import (
    pour_cost_percent,
    suggested_menu_price,
    variant_cost_per_ounce,
)
from barstock.normalize.units import convert_units, to_milliliters
from barstock.schemas import Ingredient, ProductVariant, Recipe, RecipeIngredientLine, parse_records
from barstock.services.settings import AppSettingsHandle
from barstock.store import DataStore, Entity

logger = get_logger(__name__)

# Free ingredients, matched as whole words ("spiced" is not "ice")
EXEMPT_INGREDIENTS = (
    "water",
    "filtered water",
    "tap water",
    "distilled water",
    "spring water",
    "sparkling water",
    "soda",
    "soda water",
    "club soda",
    "ice",
    "coconut water",
    "top",
)

_EXEMPT_PATTERNS = [
    re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE) for name in EXEMPT_INGREDIENTS
]


class CostStatus(str, Enum):
    """How a recipe line was costed."""

    HAS_COST = "has_cost"
    NO_COST = "no_cost"
    NOT_FOUND = "not_found"
    INVALID_PREP_ACTION = "invalid_prep_action"


@dataclass
class LineCost:
    """Cost of one recipe ingredient line."""

    line: RecipeIngredientLine
    cost: float = 0.0
    status: CostStatus = CostStatus.NO_COST
    ingredient_id: str | None = None
    sub_recipe_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ingredient_name": self.line.ingredient_name,
            "amount": self.line.amount,
            "unit": self.line.unit,
            "cost": round(self.cost, 4),
            "status": self.status.value,
            "ingredient_id": self.ingredient_id,
            "sub_recipe_id": self.sub_recipe_id,
        }


@dataclass
class RecipeCost:
    """Costed recipe with per-line detail."""

    recipe: Recipe
    lines: list[LineCost] = field(default_factory=list)
    target_pour_cost: float | None = None

    @property
    def total_cost(self) -> float:
        return sum(line.cost for line in self.lines)

    @property
    def unpriced_count(self) -> int:
        """Lines that could not be costed (missing ingredient, price or prep)."""
        return sum(1 for line in self.lines if line.status is not CostStatus.HAS_COST)

    @property
    def pour_cost_percent(self) -> float | None:
        return pour_cost_percent(self.total_cost, self.recipe.menu_price)

    @property
    def suggested_price(self) -> float | None:
        if self.target_pour_cost is None:
            return None
        return suggested_menu_price(self.total_cost, self.target_pour_cost)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "recipe_id": self.recipe.id,
            "recipe_name": self.recipe.name,
            "total_cost": round(self.total_cost, 4),
            "menu_price": self.recipe.menu_price,
            "pour_cost_percent": self.pour_cost_percent,
            "target_pour_cost": self.target_pour_cost,
            "suggested_price": self.suggested_price,
            "unpriced_count": self.unpriced_count,
            "lines": [line.to_dict() for line in self.lines],
        }


def base_ingredient_name(text: str | None) -> str:
    """Ingredient part of a line name written as "Lime - juiced" or "Lime, juiced"."""
    return (text or "").split(" - ")[0].split(",")[0].strip()


def is_exempt(name: str | None) -> bool:
    """Water, soda, ice and the like cost nothing."""
    lowered = (name or "").strip().lower()
    return any(p.search(lowered) for p in _EXEMPT_PATTERNS)


def _yield_ml(recipe: Recipe) -> float | None:
    if not recipe.yield_amount or recipe.yield_amount <= 0:
        return None
    return to_milliliters(recipe.yield_amount, recipe.yield_unit or "ml") or None


class RecipeCoster:
    """
    Costs recipe lines against a snapshot of ingredients, variants and recipes.

    A line is matched to an ingredient by id, then by name (exact,
    normalized, alias). Sub-recipes are costed by their yield, prep actions
    by their yield per purchased unit, everything else through the
    ingredient's cost per unit with the cheapest variant per ounce as a
    fallback.
    """

    def __init__(
        self,
        ingredients: Sequence[Ingredient],
        variants: Iterable[ProductVariant] = (),
        recipes: Sequence[Recipe] = (),
        oz_interpretation: str = "auto",
    ):
        self.ingredients = list(ingredients)
        self.recipes = list(recipes)
        self.oz_interpretation = oz_interpretation
        self.variants_by_ingredient: dict[str, list[ProductVariant]] = {}
        for variant in variants:
            if variant.ingredient_id:
                self.variants_by_ingredient.setdefault(variant.ingredient_id, []).append(variant)

    def _recipe_by_id(self, recipe_id: str | None) -> Recipe | None:
        return next((r for r in self.recipes if r.id == recipe_id), None)

    def _recipe_by_name(self, name: str | None) -> Recipe | None:
        key = (name or "").strip().lower()
        if not key:
            return None
        return next((r for r in self.recipes if r.name.strip().lower() == key), None)

    def _match(self, line: RecipeIngredientLine) -> Ingredient | None:
        if line.ingredient_id:
            return find_matching_ingredient(None, self.ingredients, line.ingredient_id)
        name = base_ingredient_name(line.ingredient_name)
        return find_matching_ingredient(name, self.ingredients)

    def _sub_recipe_cost(
        self, sub: Recipe, line: RecipeIngredientLine, seen: frozenset[str]
    ) -> float | None:
        if sub.id in seen:
            logger.warning(f"Recipe {sub.name!r} includes itself; not costed")
            return None
        yield_ml = _yield_ml(sub)
        use_ml = to_milliliters(line.amount, line.unit or "oz")
        if not yield_ml or use_ml is None:
            return None
        total = self.recipe_cost(sub, seen).total_cost
        if total <= 0:
            return None
        return total / yield_ml * use_ml

    def line_cost(
        self, line: RecipeIngredientLine, seen: frozenset[str] = frozenset()
    ) -> LineCost:
        """Cost one recipe line."""
        match = self._match(line)

        # Lines naming another recipe use that recipe's cost per ml of yield
        named_sub = self._recipe_by_name(match.name if match else line.ingredient_name)
        if named_sub is not None and _yield_ml(named_sub):
            cost = self._sub_recipe_cost(named_sub, line, seen)
            if cost is not None:
                return LineCost(
                    line,
                    cost,
                    CostStatus.HAS_COST,
                    ingredient_id=match.id if match else None,
                    sub_recipe_id=named_sub.id,
                )

        if match is None:
            return LineCost(line, status=CostStatus.NOT_FOUND)
        result = LineCost(line, ingredient_id=match.id)

        if is_exempt(match.name):
            result.status = CostStatus.HAS_COST
            return result

        if match.sub_recipe_id and self.recipes:
            sub = self._recipe_by_id(match.sub_recipe_id)
            cost = self._sub_recipe_cost(sub, line, seen) if sub else None
            if cost is not None:
                result.cost, result.status = cost, CostStatus.HAS_COST
                result.sub_recipe_id = sub.id
            return result

        if line.prep_action_id:
            return self._prep_action_cost(match, line, result)

        amount = line.amount or 0.0
        unit = line.unit or "oz"

        # Stored cost per unit, converted into that unit
        cost_per_unit = match.cost_per_unit or 0.0
        if cost_per_unit > 0:
            in_cost_unit = convert_units(amount, unit, match.unit or "oz", self.oz_interpretation)
            if in_cost_unit is not None and in_cost_unit > 0:
                result.cost, result.status = cost_per_unit * in_cost_unit, CostStatus.HAS_COST
                return result

        # Cheapest variant per ounce
        per_oz = [variant_cost_per_ounce(v) for v in self.variants_by_ingredient.get(match.id, [])]
        per_oz = [c for c in per_oz if c > 0]
        amount_oz = convert_units(amount, unit, "oz", "fluid")
        if per_oz and amount_oz:
            result.cost, result.status = min(per_oz) * amount_oz, CostStatus.HAS_COST
        return result

    def _prep_action_cost(
        self, match: Ingredient, line: RecipeIngredientLine, result: LineCost
    ) -> LineCost:
        prep = next((p for p in match.prep_actions if p.get("id") == line.prep_action_id), None)
        if prep is None:
            result.status = CostStatus.INVALID_PREP_ACTION
            return result

        yield_amount = prep.get("yield_amount") or 0
        yield_unit = prep.get("yield_unit")
        requested = convert_units(
            line.amount or 0.0, line.unit or "oz", yield_unit, self.oz_interpretation
        )
        cost_per_unit = match.cost_per_unit or 0.0
        if requested is not None and requested >= 0 and yield_amount > 0 and cost_per_unit > 0:
            # yield_amount is what one purchased unit produces
            result.cost = cost_per_unit * requested / yield_amount
            result.status = CostStatus.HAS_COST
        return result

    def recipe_cost(self, recipe: Recipe, seen: frozenset[str] = frozenset()) -> RecipeCost:
        """Cost every line of a recipe."""
        inner = seen | {recipe.id} if recipe.id else seen
        lines = [self.line_cost(line, inner) for line in recipe.ingredients]
        return RecipeCost(recipe=recipe, lines=lines)


async def cost_recipe(
    store: DataStore,
    recipe_id: str,
    user_id: str | None = None,
) -> RecipeCost:
    """
    Cost a stored recipe.

    With a user the user's ounce interpretation and target pour cost apply.

    Raises:
        RecordNotFoundError: The recipe does not exist.
    """
    recipe = Recipe.model_validate(await store.get(Entity.RECIPE, recipe_id))
    ingredient_rows, variant_rows, recipe_rows = await asyncio.gather(
        store.list(Entity.INGREDIENT),
        store.list(Entity.PRODUCT_VARIANT),
        store.list(Entity.RECIPE),
    )

    oz_interpretation = "auto"
    target = None
    if user_id:
        handle = await AppSettingsHandle.load(store, user_id)
        oz_interpretation = handle.oz_interpretation
        target = handle.target_pour_cost

    coster = RecipeCoster(
        parse_records(Ingredient, ingredient_rows),
        parse_records(ProductVariant, variant_rows),
        parse_records(Recipe, recipe_rows),
        oz_interpretation=oz_interpretation,
    )
    result = coster.recipe_cost(recipe)
    result.target_pour_cost = target
    logger.info(
        f"Costed recipe {recipe.name!r}: {result.total_cost:.2f} "
        f"({result.unpriced_count} unpriced line(s))"
    )
    return result
