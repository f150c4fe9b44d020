"""Bulk ingredient and variant import with a dry-run diff."""

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import IO, Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from barstock.config import get_settings
from barstock.logging_config import get_logger
from barstock.matching.lookup import NameSuggestion, suggest_similar_names
from barstock.normalize.cost import (
    COST_DECIMALS,
    CostResult,
    cheapest_variant_cost,
    variant_cost_per_ounce,
)
from barstock.schemas import Ingredient, LenientFloat, ProductVariant, parse_records
from barstock.store import DataStore, Entity

logger = get_logger(__name__)

INGREDIENT_FIELDS = (
    "supplier",
    "category",
    "spirit_type",
    "style",
    "substyle",
    "flavor",
    "region",
    "description",
    "abv",
)
VARIANT_FIELDS = (
    "sku_number",
    "purchase_price",
    "case_price",
    "bottles_per_case",
    "size_ml",
    "purchase_quantity",
    "purchase_unit",
    "tier",
    "exclusive",
    "bottle_image_url",
)
PRICE_FIELDS = ("purchase_price", "case_price")
INGREDIENT_TEXT_FIELDS = ("supplier", "category")
VARIANT_TEXT_FIELDS = ("bottle_image_url", "tier")


class ImportRow(BaseModel):
    """One product line of an import sheet."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str
    supplier: str | None = None
    category: str | None = None
    spirit_type: str | None = None
    style: str | None = None
    substyle: str | None = None
    flavor: str | None = None
    region: str | None = None
    description: str | None = None
    abv: LenientFloat = None
    sku_number: str | None = None
    purchase_price: LenientFloat = None
    case_price: LenientFloat = None
    bottles_per_case: LenientFloat = 1
    size_ml: LenientFloat = 750
    purchase_quantity: LenientFloat = 1
    purchase_unit: str | None = None
    tier: str | None = None
    exclusive: bool | None = None
    bottle_image_url: str | None = None

    @field_validator("sku_number", mode="before")
    @classmethod
    def _sku_as_text(cls, value: Any) -> Any:
        # Spreadsheets hand numeric SKUs over as floats
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("exclusive", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip().lower()
            if not text:
                return None
            return text in ("1", "true", "yes", "y", "x")
        return value

    @field_validator("bottles_per_case", "size_ml", "purchase_quantity", mode="after")
    @classmethod
    def _default_when_blank(cls, value: float | None, info: ValidationInfo) -> float:
        if value is not None:
            return value
        return 750.0 if info.field_name == "size_ml" else 1.0

    @property
    def key(self) -> str:
        return self.name.strip().lower()

    def ingredient_fields(self) -> dict[str, Any]:
        return {f: getattr(self, f) for f in INGREDIENT_FIELDS if getattr(self, f) is not None}

    def variant_fields(self) -> dict[str, Any]:
        return {f: getattr(self, f) for f in VARIANT_FIELDS if getattr(self, f) is not None}


class RowStatus(str, Enum):
    NEW = "NEW"
    UPDATE = "UPDATE"
    SAME = "SAME"


class FieldChange(BaseModel):
    field: str
    old: Any = None
    new: Any = None


class RowDiff(BaseModel):
    """Dry-run outcome of one import row."""

    name: str
    sku_number: str | None = None
    status: RowStatus
    ingredient_id: str | None = None
    variant_id: str | None = None
    changes: list[FieldChange] = Field(default_factory=list)
    suggestions: list[NameSuggestion] = Field(default_factory=list)


class ImportPreview(BaseModel):
    rows: list[RowDiff] = Field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in RowStatus}
        for row in self.rows:
            counts[row.status.value] += 1
        return counts


class ImportStats:
    """Counts of a live import."""

    def __init__(self) -> None:
        self.ingredients_created: int = 0
        self.ingredients_updated: int = 0
        self.variants_created: int = 0
        self.variants_updated: int = 0
        self.skipped: int = 0
        self.errors: list[str] = []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "ingredients_created": self.ingredients_created,
            "ingredients_updated": self.ingredients_updated,
            "variants_created": self.variants_created,
            "variants_updated": self.variants_updated,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def read_import_csv(source: str | IO[Any]) -> list[ImportRow]:
    """
    Load import rows from a CSV file.

    Blank cells become None; rows without a name are dropped.
    """
    frame = pd.read_csv(source, dtype=str)
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    frame = frame.astype(object).where(pd.notna(frame), None)
    return parse_rows(frame.to_dict(orient="records"))


def parse_rows(records: Iterable[dict[str, Any]]) -> list[ImportRow]:
    rows: list[ImportRow] = []
    for index, record in enumerate(records):
        if not str(record.get("name") or "").strip():
            logger.warning(f"Import row {index} has no name, skipping")
            continue
        rows.append(ImportRow.model_validate(record))
    return rows


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _price_changed(old: float | None, new: float | None, tolerance: float) -> bool:
    if new is None:
        return False
    if old is None:
        return True
    return abs(old - new) > tolerance


class IngredientImporter:
    """
    Matches import rows against stored ingredients and variants.

    Variants are matched by SKU, or by ingredient name and bottle size when
    a row has no SKU. Ingredients are matched by trimmed lowercase name.
    """

    def __init__(self, store: DataStore, price_tolerance: float | None = None):
        self.store = store
        settings = get_settings()
        self.price_tolerance = (
            settings.import_price_tolerance if price_tolerance is None else price_tolerance
        )
        self.suggestion_min_score = settings.import_suggestion_min_score
        self.ingredients: dict[str, Ingredient] = {}
        self.ingredients_by_id: dict[str, Ingredient] = {}
        self.variants_by_sku: dict[str, ProductVariant] = {}
        self.variants: list[ProductVariant] = []

    async def _load(self) -> None:
        ingredients = parse_records(Ingredient, await self.store.list(Entity.INGREDIENT))
        self.ingredients = {i.name.strip().lower(): i for i in ingredients if i.name}
        self.ingredients_by_id = {i.id: i for i in ingredients if i.id}
        self.variants = parse_records(ProductVariant, await self.store.list(Entity.PRODUCT_VARIANT))
        self.variants_by_sku = {v.sku_number: v for v in self.variants if v.sku_number}

    def _match_variant(self, row: ImportRow) -> ProductVariant | None:
        if row.sku_number:
            return self.variants_by_sku.get(row.sku_number)
        ingredient = self.ingredients.get(row.key)
        if ingredient is None:
            return None
        return next(
            (
                v
                for v in self.variants
                if v.ingredient_id == ingredient.id and v.size_ml == row.size_ml
            ),
            None,
        )

    def diff_row(self, row: ImportRow) -> RowDiff:
        """Classify a row as NEW, UPDATE or SAME against the loaded state."""
        variant = self._match_variant(row)
        if variant is None:
            suggestions: list[NameSuggestion] = []
            if row.key not in self.ingredients:
                suggestions = suggest_similar_names(
                    row.name,
                    [i.name for i in self.ingredients.values()],
                    min_score=self.suggestion_min_score,
                )
            existing = self.ingredients.get(row.key)
            return RowDiff(
                name=row.name,
                sku_number=row.sku_number,
                status=RowStatus.NEW,
                ingredient_id=existing.id if existing else None,
                suggestions=suggestions,
            )

        ingredient = self.ingredients_by_id.get(variant.ingredient_id or "")
        changes: list[FieldChange] = []

        for name in PRICE_FIELDS:
            old, new = getattr(variant, name), getattr(row, name)
            if _price_changed(old, new, self.price_tolerance):
                changes.append(FieldChange(field=name, old=old, new=new))

        if ingredient is not None:
            for name in INGREDIENT_TEXT_FIELDS:
                old, new = getattr(ingredient, name), getattr(row, name)
                if new is not None and _text(old) != _text(new):
                    changes.append(FieldChange(field=name, old=old, new=new))

        for name in VARIANT_TEXT_FIELDS:
            old, new = getattr(variant, name), getattr(row, name)
            if new is not None and _text(old) != _text(new):
                changes.append(FieldChange(field=name, old=old, new=new))

        if row.exclusive is not None and bool(variant.exclusive) != row.exclusive:
            changes.append(FieldChange(field="exclusive", old=variant.exclusive, new=row.exclusive))

        return RowDiff(
            name=row.name,
            sku_number=row.sku_number,
            status=RowStatus.UPDATE if changes else RowStatus.SAME,
            ingredient_id=variant.ingredient_id,
            variant_id=variant.id,
            changes=changes,
        )

    async def preview(self, rows: Sequence[ImportRow]) -> ImportPreview:
        """Dry run: report what applying the rows would change, without writing."""
        await self._load()
        preview = ImportPreview(rows=[self.diff_row(row) for row in rows])
        logger.info(f"Import preview of {len(rows)} row(s): {preview.counts}")
        return preview

    async def apply(self, rows: Sequence[ImportRow]) -> ImportStats:
        """
        Write the rows.

        Ingredients are upserted first, each new name created once, then
        variants are upserted. Touched ingredients get their cost_per_unit
        recomputed from their cheapest variant.
        """
        await self._load()
        stats = ImportStats()

        ingredient_ids: dict[str, str] = {}
        for row in rows:
            if row.key in ingredient_ids:
                continue
            try:
                ingredient_ids[row.key] = await self._upsert_ingredient(row, stats)
            except Exception as e:
                logger.error(f"Failed to import ingredient {row.name!r}: {e}")
                stats.errors.append(f"{row.name}: {e}")

        touched: set[str] = set()
        for row in rows:
            ingredient_id = ingredient_ids.get(row.key)
            if ingredient_id is None:
                stats.skipped += 1
                continue
            try:
                await self._upsert_variant(row, ingredient_id, stats)
                touched.add(ingredient_id)
            except Exception as e:
                logger.error(f"Failed to import variant {row.sku_number or row.name!r}: {e}")
                stats.errors.append(f"{row.sku_number or row.name}: {e}")
                stats.skipped += 1

        for ingredient_id in touched:
            await self._refresh_cost(ingredient_id)

        logger.info(f"Import applied: {stats.to_dict()}")
        return stats

    async def _upsert_ingredient(self, row: ImportRow, stats: ImportStats) -> str:
        fields = row.ingredient_fields()
        existing = self.ingredients.get(row.key)
        if existing is not None:
            if fields:
                await self.store.update(Entity.INGREDIENT, existing.id, fields)
                stats.ingredients_updated += 1
            return existing.id

        data = await self.store.create(
            Entity.INGREDIENT, {"name": row.name, "unit": "oz", **fields}
        )
        created = Ingredient.model_validate(data)
        self.ingredients[row.key] = created
        self.ingredients_by_id[created.id] = created
        stats.ingredients_created += 1
        return created.id

    async def _upsert_variant(self, row: ImportRow, ingredient_id: str, stats: ImportStats) -> None:
        fields = {"ingredient_id": ingredient_id, **row.variant_fields()}
        variant = self._match_variant(row)
        if variant is not None:
            await self.store.update(Entity.PRODUCT_VARIANT, variant.id, fields)
            stats.variants_updated += 1
            return

        created = ProductVariant.model_validate(
            await self.store.create(Entity.PRODUCT_VARIANT, fields)
        )
        self.variants.append(created)
        if created.sku_number:
            self.variants_by_sku[created.sku_number] = created
        stats.variants_created += 1

    async def _refresh_cost(self, ingredient_id: str) -> None:
        variants = parse_records(
            ProductVariant,
            await self.store.filter(Entity.PRODUCT_VARIANT, ingredient_id=ingredient_id),
        )
        best = cheapest_variant_cost([v for v in variants if v.purchase_unit])
        if best is None:
            # Sheet rows often carry only a bottle size; price those per ounce
            per_oz = [c for c in (variant_cost_per_ounce(v) for v in variants) if c > 0]
            if per_oz:
                best = CostResult(round(min(per_oz), COST_DECIMALS), "oz")
        if best is not None:
            await self.store.update(
                Entity.INGREDIENT,
                ingredient_id,
                {"cost_per_unit": best.cost_per_unit, "unit": best.canonical_unit},
            )
