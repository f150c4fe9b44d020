"""Inventory operations: adding menus, counting stock and comparing reports."""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from barstock.inventory.batch import ensure_inventory_item_for_batch_recipe
from barstock.inventory.usage import HistoryRow, reconcile_reports, usage_history
from barstock.inventory.variants import VariantResolver, inventory_ingredients, menu_recipes
from barstock.logging_config import LoggingContext, get_logger
from barstock.normalize.units import format_bottle_size
from barstock.schemas import (
    Ingredient,
    InventoryCountLog,
    InventoryItem,
    InventoryReport,
    Menu,
    ProductVariant,
    Recipe,
    parse_records,
)
from barstock.services.bulk import BulkResult, ProgressCallback, run_in_chunks
from barstock.store import DataStore, Entity

logger = get_logger(__name__)

UNKNOWN_ITEM_NAME = "Unknown Item"
UNKNOWN_SIZE = "-"


@dataclass
class ReportComparisonRow:
    """Usage of one inventory item between two reports."""

    id: str
    name: str
    size: str
    start: float
    end: float
    usage: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class InventoryService:
    """Inventory workflows for one record store."""

    def __init__(self, store: DataStore, chunk_size: int | None = None):
        self.store = store
        self.chunk_size = chunk_size

    # =========================================================================
    # Adding recipes and menus
    # =========================================================================

    async def add_recipes_to_inventory(
        self,
        recipes: Sequence[Recipe],
        account_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> BulkResult:
        """
        Track every untracked variant of the recipes' inventory ingredients.

        Bottled batch recipes are then synced so their batch bottle exists
        and carries the current label and colors. A failed batch sync is
        logged and recorded in the result errors.
        """
        if not recipes or not account_id:
            return BulkResult()

        with LoggingContext(account_id=account_id):
            all_ingredients = parse_records(Ingredient, await self.store.list(Entity.INGREDIENT))
            relevant = inventory_ingredients(recipes, all_ingredients)

            result = BulkResult()
            if relevant:
                resolver = VariantResolver(self.store, account_id, chunk_size=self.chunk_size)
                await resolver.load(ingredients=relevant)
                resolver.select_all()
                result = await resolver.confirm(on_progress=on_progress)

            for recipe in recipes:
                bottle = recipe.settings.inventory_bottle
                if bottle is None or not bottle.enabled or not bottle.size_ml:
                    continue
                logger.info(f"Syncing batch inventory for recipe {recipe.name!r}")
                try:
                    await ensure_inventory_item_for_batch_recipe(
                        self.store, recipe, all_ingredients, account_id
                    )
                except Exception as e:
                    logger.error(f"Failed to sync batch inventory for {recipe.name!r}: {e}")
                    result.errors.append(f"{recipe.name}: {e}")

            return result

    async def add_menu_to_inventory(
        self,
        menu_id: str,
        account_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> BulkResult:
        """Add the inventory ingredients of every recipe on a menu."""
        if not menu_id or not account_id:
            return BulkResult()
        menu = Menu.model_validate(await self.store.get(Entity.MENU, menu_id))
        recipes = menu_recipes(menu, parse_records(Recipe, await self.store.list(Entity.RECIPE)))
        logger.info(f"Adding {len(recipes)} recipe(s) from menu {menu.name!r} to inventory")
        return await self.add_recipes_to_inventory(recipes, account_id, on_progress=on_progress)

    # =========================================================================
    # Counts and reports
    # =========================================================================

    async def record_count(
        self,
        inventory_item_id: str,
        counted_quantity: float,
        counted_by: str | None = None,
        notes: str | None = None,
        report_id: str | None = None,
        count_date: datetime | None = None,
    ) -> InventoryCountLog:
        """Append a count log and set the item's current stock to the count."""
        if counted_quantity < 0:
            raise ValueError("counted_quantity cannot be negative")

        await self.store.get(Entity.INVENTORY_ITEM, inventory_item_id)
        row = await self.store.create(
            Entity.INVENTORY_COUNT_LOG,
            {
                "inventory_item_id": inventory_item_id,
                "report_id": report_id,
                "counted_quantity": counted_quantity,
                "count_date": count_date or datetime.utcnow(),
                "counted_by": counted_by,
                "notes": notes,
            },
        )
        await self.store.update(
            Entity.INVENTORY_ITEM, inventory_item_id, {"current_stock": counted_quantity}
        )
        return InventoryCountLog.model_validate(row)

    async def create_report(
        self,
        account_id: str,
        counts: Mapping[str, float],
        name: str | None = None,
        counted_by: str | None = None,
    ) -> tuple[InventoryReport, BulkResult]:
        """
        Record a full stock count as one report.

        Args:
            account_id: Account being counted.
            counts: Counted quantity per inventory item id.
            name: Optional report name.
            counted_by: Who took the count.

        Returns:
            The report and the outcome of recording each count.
        """
        now = datetime.utcnow()
        report = InventoryReport.model_validate(
            await self.store.create(
                Entity.INVENTORY_REPORT,
                {"account_id": account_id, "name": name, "created_at": now},
            )
        )

        async def record(entry: tuple[str, float]) -> InventoryCountLog:
            item_id, quantity = entry
            return await self.record_count(
                item_id, quantity, counted_by=counted_by, report_id=report.id, count_date=now
            )

        with LoggingContext(account_id=account_id):
            result = await run_in_chunks(
                list(counts.items()), record, chunk_size=self.chunk_size, label="count"
            )
        return report, result

    async def item_history(self, inventory_item_id: str) -> list[HistoryRow]:
        """Count history of an item, newest first, with usage between counts."""
        rows = await self.store.filter(
            Entity.INVENTORY_COUNT_LOG, inventory_item_id=inventory_item_id
        )
        return usage_history(parse_records(InventoryCountLog, rows))

    async def compare_reports(
        self, start_report_id: str, end_report_id: str
    ) -> list[ReportComparisonRow]:
        """
        Usage per item between two reports, sorted by ingredient name.

        Items counted in only one report use 0 for the other side.
        """
        start_rows, end_rows = await asyncio.gather(
            self.store.filter(Entity.INVENTORY_COUNT_LOG, report_id=start_report_id),
            self.store.filter(Entity.INVENTORY_COUNT_LOG, report_id=end_report_id),
        )
        reconciled = reconcile_reports(
            parse_records(InventoryCountLog, start_rows),
            parse_records(InventoryCountLog, end_rows),
        )

        items_rows, ingredient_rows, variant_rows = await asyncio.gather(
            self.store.list(Entity.INVENTORY_ITEM),
            self.store.list(Entity.INGREDIENT),
            self.store.list(Entity.PRODUCT_VARIANT),
        )
        items = {i.id: i for i in parse_records(InventoryItem, items_rows)}
        ingredients = {i.id: i for i in parse_records(Ingredient, ingredient_rows)}
        variants = {v.id: v for v in parse_records(ProductVariant, variant_rows)}

        comparison = []
        for item_id, entry in reconciled.items():
            item = items.get(item_id)
            ingredient = ingredients.get(item.ingredient_id) if item else None
            variant = variants.get(item.product_variant_id) if item else None
            size = format_bottle_size(variant.size_ml) if variant else UNKNOWN_SIZE
            comparison.append(
                ReportComparisonRow(
                    id=item_id,
                    name=ingredient.name if ingredient else UNKNOWN_ITEM_NAME,
                    size=size,
                    start=entry.start,
                    end=entry.end,
                    usage=entry.usage,
                )
            )

        comparison.sort(key=lambda row: row.name.lower())
        return comparison
