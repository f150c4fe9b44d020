"""Tests for recipe costing."""

import pytest

from barstock.normalize.units import G_PER_OZ, ML_PER_OZ
from barstock.schemas import Recipe, RecipeIngredientLine
from barstock.services.costing import (
    CostStatus,
    RecipeCoster,
    base_ingredient_name,
    cost_recipe,
    is_exempt,
)
from barstock.store import Entity, RecordNotFoundError


def _line(name=None, amount=1.0, unit="oz", **fields):
    return RecipeIngredientLine(ingredient_name=name, amount=amount, unit=unit, **fields)


@pytest.fixture
def pantry(make_ingredient):
    """Ingredients priced per ounce, gram, milliliter and piece."""
    return [
        make_ingredient("Gin", cost_per_unit=1.0, unit="oz"),
        make_ingredient("Lime Juice", cost_per_unit=0.25, unit="oz", aliases=["fresh lime"]),
        make_ingredient("Sugar", cost_per_unit=0.01, unit="g"),
        make_ingredient("Cream", cost_per_unit=0.01, unit="ml"),
        make_ingredient("Soda Water", cost_per_unit=0.1, unit="oz"),
        make_ingredient("Vodka"),
        make_ingredient(
            "Lime",
            cost_per_unit=0.5,
            unit="piece",
            prep_actions=[
                {"id": "prep-juice", "name": "Juice", "yield_amount": 1, "yield_unit": "oz"}
            ],
        ),
        make_ingredient("Batch Base", sub_recipe_id="rec-house"),
    ]


@pytest.fixture
def house_syrup():
    """A 500 ml batch costing 10.00."""
    return Recipe(
        id="rec-house",
        name="House Syrup",
        yield_amount=500,
        yield_unit="ml",
        ingredients=[{"ingredient_name": "Gin", "amount": 10, "unit": "oz"}],
    )


class TestLineNames:
    """Tests for line name helpers."""

    def test_base_name(self):
        """Test prep notes after a dash or comma are dropped."""
        assert base_ingredient_name("Lime Juice - fresh") == "Lime Juice"
        assert base_ingredient_name("Mint, muddled") == "Mint"
        assert base_ingredient_name(None) == ""

    def test_exempt(self):
        """Test free ingredients match on whole words only."""
        assert is_exempt("Club Soda")
        assert is_exempt("ICE")
        assert not is_exempt("Spiced Rum")
        assert not is_exempt(None)


class TestLineCost:
    """Tests for costing single lines."""

    def test_cost_per_unit(self, pantry):
        """Test a line in the ingredient's unit multiplies through."""
        cost = RecipeCoster(pantry).line_cost(_line("Gin", 2))
        assert cost.status is CostStatus.HAS_COST
        assert cost.cost == pytest.approx(2.0)
        assert cost.ingredient_id == "ing-gin"

    def test_match_by_id_wins(self, pantry):
        """Test an ingredient id is used even when the name differs."""
        cost = RecipeCoster(pantry).line_cost(_line("Something Else", 2, ingredient_id="ing-gin"))
        assert cost.cost == pytest.approx(2.0)

    def test_match_by_alias_and_base_name(self, pantry):
        """Test aliases and names with prep notes find the ingredient."""
        coster = RecipeCoster(pantry)
        assert coster.line_cost(_line("Fresh Lime", 1)).ingredient_id == "ing-lime-juice"
        assert coster.line_cost(_line("Lime Juice - strained", 1)).cost == pytest.approx(0.25)

    def test_not_found(self, pantry):
        """Test an unknown ingredient is reported, not costed."""
        cost = RecipeCoster(pantry).line_cost(_line("Unobtainium", 1))
        assert cost.status is CostStatus.NOT_FOUND
        assert cost.cost == 0.0

    def test_exempt_costs_nothing(self, pantry):
        """Test soda water is free even with a stored cost."""
        cost = RecipeCoster(pantry).line_cost(_line("Soda Water", 4))
        assert cost.status is CostStatus.HAS_COST
        assert cost.cost == 0.0

    def test_ounces_as_weight(self, pantry):
        """Test ounces against a gram price use weight ounces unless fluid."""
        auto = RecipeCoster(pantry).line_cost(_line("Sugar", 1))
        assert auto.cost == pytest.approx(0.01 * G_PER_OZ)

        fluid = RecipeCoster(pantry, oz_interpretation="fluid").line_cost(_line("Sugar", 1))
        assert fluid.status is CostStatus.NO_COST
        assert fluid.cost == 0.0

    def test_ounces_as_volume(self, pantry):
        """Test ounces against a milliliter price use fluid ounces unless weight."""
        auto = RecipeCoster(pantry).line_cost(_line("Cream", 1))
        assert auto.cost == pytest.approx(0.01 * ML_PER_OZ)

        weight = RecipeCoster(pantry, oz_interpretation="weight").line_cost(_line("Cream", 1))
        assert weight.status is CostStatus.NO_COST

    def test_prep_action(self, pantry):
        """Test a prep action costs the purchase unit over its yield."""
        cost = RecipeCoster(pantry).line_cost(_line("Lime", 0.75, prep_action_id="prep-juice"))
        assert cost.status is CostStatus.HAS_COST
        assert cost.cost == pytest.approx(0.375)

    def test_unknown_prep_action(self, pantry):
        """Test a prep action the ingredient lacks is flagged."""
        cost = RecipeCoster(pantry).line_cost(_line("Lime", 1, prep_action_id="prep-zest"))
        assert cost.status is CostStatus.INVALID_PREP_ACTION

    def test_cheapest_variant_fallback(self, pantry, make_variant):
        """Test an unpriced ingredient uses its cheapest variant per ounce."""
        variants = [
            make_variant(ingredient_id="ing-vodka", size_ml=750, purchase_price=20),
            make_variant(ingredient_id="ing-vodka", size_ml=1000, purchase_price=40),
        ]
        cost = RecipeCoster(pantry, variants).line_cost(_line("Vodka", 1.5))
        assert cost.status is CostStatus.HAS_COST
        assert cost.cost == pytest.approx(20 / (750 / ML_PER_OZ) * 1.5)

    def test_unpriced_without_variants(self, pantry):
        """Test an ingredient with no cost and no variants has no cost."""
        cost = RecipeCoster(pantry).line_cost(_line("Vodka", 1.5))
        assert cost.status is CostStatus.NO_COST


class TestSubRecipes:
    """Tests for costing batch recipes used as ingredients."""

    def test_named_sub_recipe(self, pantry, house_syrup):
        """Test a line naming a recipe uses its cost per ml of yield."""
        cost = RecipeCoster(pantry, recipes=[house_syrup]).line_cost(_line("House Syrup", 1))
        assert cost.status is CostStatus.HAS_COST
        assert cost.sub_recipe_id == "rec-house"
        assert cost.cost == pytest.approx(10 / 500 * ML_PER_OZ)

    def test_linked_sub_recipe(self, pantry, house_syrup):
        """Test an ingredient linked to a recipe is costed through it."""
        cost = RecipeCoster(pantry, recipes=[house_syrup]).line_cost(_line("Batch Base", 2))
        assert cost.ingredient_id == "ing-batch-base"
        assert cost.sub_recipe_id == "rec-house"
        assert cost.cost == pytest.approx(10 / 500 * ML_PER_OZ * 2)

    def test_self_reference(self, pantry):
        """Test a recipe that includes itself is not costed endlessly."""
        loop = Recipe(
            id="rec-loop",
            name="Loop",
            yield_amount=100,
            yield_unit="ml",
            ingredients=[{"ingredient_name": "Loop", "amount": 1, "unit": "oz"}],
        )
        result = RecipeCoster(pantry, recipes=[loop]).recipe_cost(loop)
        assert result.lines[0].status is CostStatus.NOT_FOUND
        assert result.total_cost == 0.0


class TestRecipeCost:
    """Tests for whole-recipe costs."""

    def test_totals_and_pour_cost(self, pantry):
        """Test totals, unpriced lines, pour cost and suggested price."""
        recipe = Recipe(
            id="rec-gimlet",
            name="Gimlet",
            menu_price=10,
            ingredients=[
                {"ingredient_name": "Gin", "amount": 2, "unit": "oz"},
                {"ingredient_name": "Unobtainium", "amount": 1, "unit": "oz"},
            ],
        )
        result = RecipeCoster(pantry).recipe_cost(recipe)
        result.target_pour_cost = 25

        assert result.total_cost == pytest.approx(2.0)
        assert result.unpriced_count == 1
        assert result.pour_cost_percent == 20.0
        assert result.suggested_price == 8.0

        data = result.to_dict()
        assert data["recipe_name"] == "Gimlet"
        assert [line["status"] for line in data["lines"]] == ["has_cost", "not_found"]

    def test_no_menu_price(self, pantry):
        """Test pour cost needs a menu price and suggestions need a target."""
        recipe = Recipe(id="rec-1", name="Neat", ingredients=[{"ingredient_name": "Gin"}])
        result = RecipeCoster(pantry).recipe_cost(recipe)
        assert result.pour_cost_percent is None
        assert result.suggested_price is None


class TestCostRecipe:
    """Tests for costing stored recipes."""

    @pytest.fixture
    def costing_store(self, store):
        store.seed(
            Entity.INGREDIENT,
            {"id": "ing-sugar", "name": "Sugar", "cost_per_unit": 0.01, "unit": "g"},
        )
        store.seed(
            Entity.RECIPE,
            {
                "id": "rec-sweet",
                "name": "Sweet",
                "menu_price": 2,
                "ingredients": [{"ingredient_name": "sugar", "amount": 1, "unit": "oz"}],
            },
        )
        return store

    @pytest.mark.asyncio
    async def test_default_interpretation(self, costing_store):
        """Test a stored recipe is costed with automatic ounces."""
        result = await cost_recipe(costing_store, "rec-sweet")
        assert result.total_cost == pytest.approx(0.01 * G_PER_OZ)
        assert result.target_pour_cost is None

    @pytest.mark.asyncio
    async def test_user_settings_apply(self, costing_store):
        """Test the user's ounce interpretation and target are used."""
        costing_store.seed(
            Entity.APP_SETTING,
            {"user_id": "user-1", "oz_interpretation": "fluid", "target_pour_cost": 25},
        )
        result = await cost_recipe(costing_store, "rec-sweet", user_id="user-1")
        assert result.total_cost == 0.0
        assert result.unpriced_count == 1
        assert result.target_pour_cost == 25

    @pytest.mark.asyncio
    async def test_unknown_recipe(self, store):
        """Test an unknown recipe raises."""
        with pytest.raises(RecordNotFoundError):
            await cost_recipe(store, "nope")
