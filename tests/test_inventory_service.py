"""Tests for inventory workflows."""

from datetime import datetime

import pytest

from barstock.schemas import Recipe, parse_records
from barstock.services.inventory import UNKNOWN_ITEM_NAME, InventoryService
from barstock.store import Entity, RecordNotFoundError


@pytest.fixture
def counted_store(bar_store):
    """bar_store with two tracked bottles and two reports of counts."""
    bar_store.seed(
        Entity.INVENTORY_ITEM,
        {
            "id": "item-titos",
            "account_id": "acct-1",
            "ingredient_id": "ing-titos",
            "product_variant_id": "var-titos-750",
            "current_stock": 5,
        },
        {
            "id": "item-campari",
            "account_id": "acct-1",
            "ingredient_id": "ing-campari",
            "product_variant_id": "var-campari-1000",
            "current_stock": 2,
        },
    )
    bar_store.seed(
        Entity.INVENTORY_COUNT_LOG,
        {
            "inventory_item_id": "item-titos",
            "report_id": "rep-1",
            "counted_quantity": 5,
            "count_date": datetime(2026, 1, 1),
        },
        {
            "inventory_item_id": "item-campari",
            "report_id": "rep-1",
            "counted_quantity": 2,
            "count_date": datetime(2026, 1, 1),
        },
        {
            "inventory_item_id": "item-titos",
            "report_id": "rep-2",
            "counted_quantity": 3.5,
            "count_date": datetime(2026, 1, 8),
        },
        {
            "inventory_item_id": "item-deleted",
            "report_id": "rep-2",
            "counted_quantity": 1,
            "count_date": datetime(2026, 1, 8),
        },
    )
    return bar_store


class TestAddToInventory:
    """Tests for adding menus and recipes to inventory."""

    @pytest.mark.asyncio
    async def test_add_menu(self, bar_store):
        """Test every variant of the menu's stocked ingredients is tracked."""
        result = await InventoryService(bar_store).add_menu_to_inventory("menu-1", "acct-1")

        assert result.succeeded == 4
        assert result.errors == []
        items = bar_store.rows(Entity.INVENTORY_ITEM)
        assert {i["product_variant_id"] for i in items} == {
            "var-titos-750",
            "var-titos-1750",
            "var-campari-1000",
            "var-negroni-batch",
        }
        negroni = next(i for i in items if i["product_variant_id"] == "var-negroni-batch")
        assert negroni["bottle_label"] == "NEG"
        assert negroni["bottle_colors"] == ["#b22222"]

    @pytest.mark.asyncio
    async def test_add_menu_twice(self, bar_store):
        """Test a second run adds nothing new."""
        service = InventoryService(bar_store)
        await service.add_menu_to_inventory("menu-1", "acct-1")
        again = await service.add_menu_to_inventory("menu-1", "acct-1")

        assert again.succeeded == 0
        assert len(bar_store.rows(Entity.INVENTORY_ITEM)) == 4

    @pytest.mark.asyncio
    async def test_add_unknown_menu(self, bar_store):
        """Test a missing menu raises."""
        with pytest.raises(RecordNotFoundError):
            await InventoryService(bar_store).add_menu_to_inventory("nope", "acct-1")

    @pytest.mark.asyncio
    async def test_failed_item_does_not_stop_others(self, bar_store):
        """Test a failing write is counted while the rest are created."""
        bar_store.fail_on.add("var-campari-1000")
        result = await InventoryService(bar_store).add_menu_to_inventory("menu-1", "acct-1")

        assert result.succeeded == 3
        assert result.failed == 1
        assert len(bar_store.rows(Entity.INVENTORY_ITEM)) == 3

    @pytest.mark.asyncio
    async def test_batch_sync_failure_is_recorded(self, bar_store):
        """Test a batch bottle that cannot be synced is reported in errors."""
        bar_store.seed(
            Entity.INVENTORY_ITEM,
            {
                "id": "item-neg",
                "account_id": "acct-1",
                "product_variant_id": "var-negroni-batch",
            },
        )
        bar_store.fail_on.add("item-neg")
        result = await InventoryService(bar_store).add_menu_to_inventory("menu-1", "acct-1")

        assert result.succeeded == 3
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Negroni Batch")

    @pytest.mark.asyncio
    async def test_no_recipes(self, bar_store):
        """Test nothing to add gives an empty result."""
        result = await InventoryService(bar_store).add_recipes_to_inventory([], "acct-1")
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_off_menu_recipe(self, bar_store):
        """Test adding a recipe directly."""
        recipes = [
            r for r in parse_records(Recipe, bar_store.rows(Entity.RECIPE)) if r.id == "rec-offmenu"
        ]
        result = await InventoryService(bar_store).add_recipes_to_inventory(recipes, "acct-1")
        assert result.succeeded == 1
        assert bar_store.rows(Entity.INVENTORY_ITEM)[0]["ingredient_id"] == "ing-campari"


class TestCounts:
    """Tests for recording counts."""

    @pytest.mark.asyncio
    async def test_record_count(self, counted_store):
        """Test a count is logged and sets current stock."""
        log = await InventoryService(counted_store).record_count(
            "item-titos", 2.25, counted_by="sam", notes="back bar"
        )

        assert log.counted_quantity == 2.25
        assert log.inventory_item_id == "item-titos"
        assert counted_store.tables[Entity.INVENTORY_ITEM]["item-titos"]["current_stock"] == 2.25
        assert len(counted_store.rows(Entity.INVENTORY_COUNT_LOG)) == 5

    @pytest.mark.asyncio
    async def test_negative_count(self, counted_store):
        """Test negative counts are rejected before anything is written."""
        with pytest.raises(ValueError):
            await InventoryService(counted_store).record_count("item-titos", -1)
        assert counted_store.writes == []

    @pytest.mark.asyncio
    async def test_unknown_item(self, counted_store):
        """Test counting an unknown item raises."""
        with pytest.raises(RecordNotFoundError):
            await InventoryService(counted_store).record_count("nope", 1)

    @pytest.mark.asyncio
    async def test_create_report(self, counted_store):
        """Test a report groups counts taken together."""
        report, result = await InventoryService(counted_store).create_report(
            "acct-1", {"item-titos": 3, "item-campari": 1}, name="Week 3"
        )

        assert report.name == "Week 3"
        assert result.succeeded == 2
        logs = [
            log
            for log in counted_store.rows(Entity.INVENTORY_COUNT_LOG)
            if log["report_id"] == report.id
        ]
        assert {log["inventory_item_id"]: log["counted_quantity"] for log in logs} == {
            "item-titos": 3,
            "item-campari": 1,
        }

    @pytest.mark.asyncio
    async def test_create_report_with_bad_item(self, counted_store):
        """Test one bad item fails alone."""
        _, result = await InventoryService(counted_store).create_report(
            "acct-1", {"item-titos": 3, "nope": 1}
        )
        assert result.succeeded == 1
        assert result.failed == 1

    @pytest.mark.asyncio
    async def test_item_history(self, counted_store):
        """Test history is newest first with usage."""
        history = await InventoryService(counted_store).item_history("item-titos")
        assert [row.log.counted_quantity for row in history] == [3.5, 5.0]
        assert history[0].usage == 1.5
        assert history[0].usage_display == "-1.50"
        assert history[1].usage is None


class TestCompareReports:
    """Tests for report comparison."""

    @pytest.mark.asyncio
    async def test_compare(self, counted_store):
        """Test usage rows sorted by name with missing sides as 0."""
        rows = await InventoryService(counted_store).compare_reports("rep-1", "rep-2")
        assert [r.to_dict() for r in rows] == [
            {
                "id": "item-campari",
                "name": "Campari",
                "size": "1000ml",
                "start": 2.0,
                "end": 0.0,
                "usage": 2.0,
            },
            {
                "id": "item-titos",
                "name": "Tito's Vodka",
                "size": "750ml",
                "start": 5.0,
                "end": 3.5,
                "usage": 1.5,
            },
            {
                "id": "item-deleted",
                "name": UNKNOWN_ITEM_NAME,
                "size": "-",
                "start": 0.0,
                "end": 1.0,
                "usage": -1.0,
            },
        ]

    @pytest.mark.asyncio
    async def test_compare_empty(self, counted_store):
        """Test reports without counts compare to nothing."""
        assert await InventoryService(counted_store).compare_reports("x", "y") == []

    @pytest.mark.asyncio
    async def test_compare_liter_bottle_size(self, counted_store):
        """Test sizes entered in liters are shown in liters."""
        counted_store.tables[Entity.INVENTORY_ITEM]["item-titos"]["product_variant_id"] = (
            "var-titos-1750"
        )
        rows = await InventoryService(counted_store).compare_reports("rep-1", "rep-2")
        sizes = {r.id: r.size for r in rows}
        assert sizes["item-titos"] == "1.75L"
