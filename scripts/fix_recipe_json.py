"""Script to repair recipe JSON fields that were stored as loose text.

Finds recipes whose ingredients, tags, garnish, allergens, prep_actions or
batch_settings hold unparseable strings, repairs what it can and resets
unrepairable list fields to empty lists.

Run with: python scripts/fix_recipe_json.py            (dry run)
          python scripts/fix_recipe_json.py --apply    (write fixes)

Requires PostgreSQL to be running (via Docker or locally).
"""

import argparse
import asyncio
import sys

from barstock.logging_config import configure_logging, get_logger
from barstock.services.bulk import run_in_chunks
from barstock.services.recipe_json import RecipeRepair, repair_recipe, validate_recipe_ingredients
from barstock.store import Entity
from barstock.store.sql import get_store

configure_logging()
logger = get_logger(__name__)


async def fix_recipes(apply: bool) -> dict[str, int]:
    store = get_store()
    recipes = await store.list(Entity.RECIPE)
    repairs = [r for r in (repair_recipe(recipe) for recipe in recipes) if r.needs_update]

    for repair in repairs:
        fields = ", ".join(sorted(repair.updates))
        logger.info(f"{repair.name!r} ({repair.recipe_id}): fix {fields}")
        if repair.unrepairable:
            logger.warning(f"{repair.name!r}: unrepairable {', '.join(repair.unrepairable)}")

    summary = {"checked": len(recipes), "needs_fix": len(repairs), "fixed": 0, "failed": 0}
    if not apply or not repairs:
        return summary

    async def write(repair: RecipeRepair) -> None:
        updates = dict(repair.updates)
        if "ingredients" in updates:
            updates["ingredients"] = validate_recipe_ingredients(updates["ingredients"])
        await store.update(Entity.RECIPE, repair.recipe_id, updates)

    result = await run_in_chunks(repairs, write, label="recipe repair")
    summary["fixed"] = result.succeeded
    summary["failed"] = result.failed
    return summary


def main():
    parser = argparse.ArgumentParser(description="Repair malformed recipe JSON fields")
    parser.add_argument("--apply", action="store_true", help="Write the fixes (default: dry run)")
    args = parser.parse_args()

    summary = asyncio.run(fix_recipes(apply=args.apply))
    logger.info(f"Recipe JSON check: {summary}")
    if not args.apply and summary["needs_fix"]:
        logger.info("Dry run only; re-run with --apply to write the fixes")
    sys.exit(1 if summary["failed"] else 0)


if __name__ == "__main__":
    main()
