"""SQLAlchemy database models."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from barstock.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Venue/customer account that owns inventory."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Ingredient(Base):
    """Purchasable or prepared ingredient."""

    __tablename__ = "ingredients"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    supplier: Mapped[str | None] = mapped_column(String, nullable=True)
    purchase_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchase_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchase_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    cost_per_unit: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    aliases: Mapped[list] = mapped_column(JSON, default=list)
    sub_recipe_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_liquor_portfolio_item: Mapped[bool] = mapped_column(Boolean, default=False)
    abv: Mapped[float | None] = mapped_column(Float, nullable=True)
    ingredient_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    prep_actions: Mapped[list] = mapped_column(JSON, default=list)
    spirit_type: Mapped[str | None] = mapped_column(String, nullable=True)
    style: Mapped[str | None] = mapped_column(String, nullable=True)
    substyle: Mapped[str | None] = mapped_column(String, nullable=True)
    flavor: Mapped[str | None] = mapped_column(String, nullable=True)
    region: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_ingredients_name", "name"),
        Index("idx_ingredients_sub_recipe_id", "sub_recipe_id"),
    )


class ProductVariant(Base):
    """One package size of an ingredient."""

    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    ingredient_id: Mapped[str] = mapped_column(String, ForeignKey("ingredients.id"))
    size_ml: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchase_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchase_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    purchase_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    case_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    bottles_per_case: Mapped[float | None] = mapped_column(Float, nullable=True)
    use_case_pricing: Mapped[bool] = mapped_column(Boolean, default=False)
    sku_number: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    tier: Mapped[str | None] = mapped_column(String, nullable=True)
    exclusive: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    bottle_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (Index("idx_product_variants_ingredient_id", "ingredient_id"),)


class InventoryItem(Base):
    """A product variant tracked in an account's inventory."""

    __tablename__ = "inventory_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False)
    product_variant_id: Mapped[str] = mapped_column(
        String, ForeignKey("product_variants.id"), nullable=False
    )
    ingredient_id: Mapped[str | None] = mapped_column(String, nullable=True)
    current_stock: Mapped[float] = mapped_column(Float, default=0.0)
    reorder_point: Mapped[float] = mapped_column(Float, default=0.0)
    unit: Mapped[str] = mapped_column(String(32), default="bottle")
    location_id: Mapped[str | None] = mapped_column(String, nullable=True)
    bottle_label: Mapped[str | None] = mapped_column(String, nullable=True)
    bottle_colors: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("account_id", "product_variant_id", name="uq_inventory_account_variant"),
        Index("idx_inventory_items_account_id", "account_id"),
    )


class InventoryReport(Base):
    """A set of counts taken together."""

    __tablename__ = "inventory_reports"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    account_id: Mapped[str | None] = mapped_column(String, nullable=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class InventoryCountLog(Base):
    """Append-only count snapshot of an inventory item."""

    __tablename__ = "inventory_count_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    inventory_item_id: Mapped[str] = mapped_column(
        String, ForeignKey("inventory_items.id"), nullable=False
    )
    report_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("inventory_reports.id"), nullable=True
    )
    counted_quantity: Mapped[float] = mapped_column(Float, nullable=False)
    count_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    counted_by: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_count_logs_item_id", "inventory_item_id"),
        Index("idx_count_logs_report_id", "report_id"),
    )


class Menu(Base):
    """Menu of recipes."""

    __tablename__ = "menus"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    account_id: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_menu_settings: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Recipe(Base):
    """Cocktail or batch recipe."""

    __tablename__ = "recipes"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    menu_id: Mapped[str | None] = mapped_column(String, nullable=True)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    ingredients: Mapped[list] = mapped_column(JSON, default=list)
    batch_settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    garnish: Mapped[list | None] = mapped_column(JSON, nullable=True)
    allergens: Mapped[list] = mapped_column(JSON, default=list)
    yield_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    yield_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    menu_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    prep_actions: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class AppSetting(Base):
    """Per-user application settings."""

    __tablename__ = "app_settings"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    oz_interpretation: Mapped[str] = mapped_column(String(16), default="auto")
    target_pour_cost: Mapped[float] = mapped_column(Float, default=20.0)
    default_unit_preference: Mapped[str] = mapped_column(String(16), default="oz")
