"""Script to delete recipes stored more than once under the same name.

For every name used by several recipes the most recently created one is
kept and the others are deleted.

Run with: python scripts/deduplicate_recipes.py              (dry run)
          python scripts/deduplicate_recipes.py --execute    (delete copies)

Requires PostgreSQL to be running (via Docker or locally).
"""

import argparse
import asyncio
import sys

from barstock.logging_config import configure_logging, get_logger
from barstock.services.recipes import deduplicate_recipes
from barstock.store.sql import get_store

configure_logging()
logger = get_logger(__name__)


async def run(execute: bool) -> int:
    groups, result = await deduplicate_recipes(get_store(), execute=execute)
    if not groups:
        logger.info("No duplicate recipes found")
        return 0

    for group in groups:
        logger.info(
            f"{group.name!r}: {len(group.recipes)} copies, keeping {group.keep.id} "
            f"(created {group.keep.created_at})"
        )
        for recipe in group.remove:
            logger.info(f"{group.name!r}: delete {recipe.id} (created {recipe.created_at})")

    if result is None:
        logger.info("Dry run only; re-run with --execute to delete the copies")
        return 0

    logger.info(f"Deleted {result.succeeded} recipe(s), {result.failed} failed")
    return 1 if result.failed else 0


def main():
    parser = argparse.ArgumentParser(description="Delete duplicate recipes, keeping the newest")
    parser.add_argument(
        "--execute", action="store_true", help="Delete the copies (default: dry run)"
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run(execute=args.execute)))


if __name__ == "__main__":
    main()
