"""Typed views over stored entity records."""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from barstock.logging_config import get_logger
from barstock.normalize.units import to_number

logger = get_logger(__name__)


def _lenient_number(value: Any) -> float | None:
    return to_number(value)


# Stored numbers arrive as floats, numeric strings, blanks or garbage
LenientFloat = Annotated[float | None, BeforeValidator(_lenient_number)]


class Record(BaseModel):
    """Base for entity views; unknown stored fields are carried along."""

    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: str | None = None


class Ingredient(Record):
    """Ingredient with purchase pricing and canonical cost."""

    name: str = ""
    category: str | None = None
    supplier: str | None = None
    purchase_price: LenientFloat = None
    purchase_quantity: LenientFloat = None
    purchase_unit: str | None = None
    cost_per_unit: LenientFloat = None
    unit: str | None = None
    aliases: list[str] = Field(default_factory=list)
    sub_recipe_id: str | None = None
    is_liquor_portfolio_item: bool = False
    abv: LenientFloat = None
    ingredient_type: str | None = None
    prep_actions: list[dict[str, Any]] = Field(default_factory=list)


class ProductVariant(Record):
    """One purchasable package size of an ingredient."""

    ingredient_id: str | None = None
    size_ml: LenientFloat = None
    purchase_quantity: LenientFloat = None
    purchase_unit: str | None = None
    purchase_price: LenientFloat = None
    case_price: LenientFloat = None
    bottles_per_case: LenientFloat = None
    use_case_pricing: bool = False
    sku_number: str | None = None
    tier: str | None = None
    exclusive: bool | None = None
    bottle_image_url: str | None = None


class InventoryItem(Record):
    """A tracked product variant for one account."""

    account_id: str | None = None
    product_variant_id: str | None = None
    ingredient_id: str | None = None
    current_stock: LenientFloat = 0.0
    reorder_point: LenientFloat = 0.0
    unit: str | None = "bottle"
    location_id: str | None = None
    bottle_label: str | None = None
    bottle_colors: list[str] = Field(default_factory=list)


class InventoryCountLog(Record):
    """Immutable count snapshot for an inventory item."""

    inventory_item_id: str
    report_id: str | None = None
    counted_quantity: LenientFloat = 0.0
    count_date: datetime
    counted_by: str | None = None
    notes: str | None = None


class InventoryReport(Record):
    """A named group of counts taken together."""

    account_id: str | None = None
    name: str | None = None
    created_at: datetime | None = None


class RecipeIngredientLine(BaseModel):
    """One ingredient line of a recipe; validated strictly before writes."""

    model_config = ConfigDict(extra="allow")

    ingredient_name: str | None = None
    ingredient_id: str | None = None
    amount: LenientFloat = None
    unit: str | None = None
    prep_action_id: str | None = None


class InventoryBottle(BaseModel):
    """Bottle settings for a batch recipe tracked as inventory."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = False
    size_ml: LenientFloat = None
    label: str | None = None
    colors: list[str] = Field(default_factory=list)


class BatchSettings(BaseModel):
    """Batch tracking options of a recipe."""

    model_config = ConfigDict(extra="allow")

    inventory_bottle: InventoryBottle | None = None
    track_batch_inventory: bool = False

    @property
    def is_batch_tracked(self) -> bool:
        """Tracked as a bottled sub-recipe instead of its components."""
        bottle_enabled = self.inventory_bottle is not None and self.inventory_bottle.enabled
        return bottle_enabled or self.track_batch_inventory


class Recipe(Record):
    """Recipe referencing ingredients by name."""

    name: str = ""
    menu_id: str | None = None
    category: str | None = None
    ingredients: list[RecipeIngredientLine] = Field(default_factory=list)
    batch_settings: BatchSettings | None = None
    yield_amount: LenientFloat = None
    yield_unit: str | None = None
    menu_price: LenientFloat = None
    created_at: datetime | None = None

    @property
    def settings(self) -> BatchSettings:
        return self.batch_settings or BatchSettings()


class Menu(Record):
    """Menu grouping recipes."""

    name: str = ""
    account_id: str | None = None
    customer_menu_settings: dict[str, Any] = Field(default_factory=dict)

    @property
    def recipe_order(self) -> list[str]:
        order = self.customer_menu_settings.get("recipe_order") or []
        return [str(r) for r in order]


class AppSetting(Record):
    """Per-user application settings."""

    user_id: str | None = None
    oz_interpretation: Literal["auto", "fluid", "weight"] = "auto"
    target_pour_cost: LenientFloat = 20.0
    default_unit_preference: str = "oz"


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_records(model: type[ModelT], rows: Iterable[Mapping[str, Any]]) -> list[ModelT]:
    """Validate stored rows, skipping (and logging) rows that do not fit."""
    parsed: list[ModelT] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {model.__name__} record {row.get('id')!r}: "
                f"{e.error_count()} validation error(s)"
            )
    return parsed
