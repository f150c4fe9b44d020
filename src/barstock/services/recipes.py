"""Recipe cleanup: finding and removing recipes stored more than once."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from barstock.logging_config import get_logger
from barstock.schemas import Recipe, parse_records
from barstock.services.bulk import BulkResult, ProgressCallback, run_in_chunks
from barstock.store import DataStore, Entity

logger = get_logger(__name__)


@dataclass
class RecipeDuplicateGroup:
    """Recipes sharing a name; the newest is kept."""

    name: str
    recipes: list[Recipe]

    @property
    def keep(self) -> Recipe:
        return self.recipes[0]

    @property
    def remove(self) -> list[Recipe]:
        return self.recipes[1:]


def _created(recipe: Recipe) -> datetime:
    return recipe.created_at or datetime.min


def find_duplicate_recipes(recipes: Iterable[Recipe]) -> list[RecipeDuplicateGroup]:
    """
    Group recipes by exact name, newest first within a group.

    Only names used more than once form a group. Groups with the most
    copies come first.
    """
    by_name: dict[str, list[Recipe]] = {}
    for recipe in recipes:
        by_name.setdefault(recipe.name, []).append(recipe)

    groups = [
        RecipeDuplicateGroup(name=name, recipes=sorted(copies, key=_created, reverse=True))
        for name, copies in by_name.items()
        if len(copies) > 1
    ]
    groups.sort(key=lambda g: len(g.recipes), reverse=True)
    return groups


async def delete_duplicate_recipes(
    store: DataStore,
    groups: list[RecipeDuplicateGroup],
    chunk_size: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> BulkResult:
    """Delete every copy but the newest; failures are counted, not raised."""
    doomed = [recipe.id for group in groups for recipe in group.remove if recipe.id]

    async def delete(recipe_id: str) -> str:
        await store.delete(Entity.RECIPE, recipe_id)
        return recipe_id

    return await run_in_chunks(
        doomed,
        delete,
        chunk_size=chunk_size,
        on_progress=on_progress,
        label="recipe delete",
    )


async def deduplicate_recipes(
    store: DataStore,
    execute: bool = False,
) -> tuple[list[RecipeDuplicateGroup], BulkResult | None]:
    """
    Find recipes stored more than once and, with ``execute``, delete the older copies.

    Returns:
        The duplicate groups and, when executed, the delete result.
    """
    recipes = parse_records(Recipe, await store.list(Entity.RECIPE))
    groups = find_duplicate_recipes(recipes)
    to_delete = sum(len(g.remove) for g in groups)
    logger.info(
        f"Checked {len(recipes)} recipes: {len(groups)} duplicated name(s), "
        f"{to_delete} copy(ies) to delete"
    )
    if not execute or not groups:
        return groups, None
    return groups, await delete_duplicate_recipes(store, groups)
