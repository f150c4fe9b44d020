"""Script to import ingredients and product variants from a CSV sheet.

The sheet needs a "name" column; other recognised columns are supplier,
category, sku_number, purchase_price, case_price, bottles_per_case, size_ml,
purchase_quantity, purchase_unit, tier, exclusive and bottle_image_url.

Run with: python scripts/import_ingredients.py products.csv            (preview)
          python scripts/import_ingredients.py products.csv --apply    (write)
"""

import argparse
import asyncio

from barstock.logging_config import configure_logging, get_logger
from barstock.services.imports import IngredientImporter, RowStatus, read_import_csv
from barstock.store.sql import get_store

configure_logging()
logger = get_logger(__name__)


async def run_import(path: str, apply: bool) -> None:
    rows = read_import_csv(path)
    importer = IngredientImporter(get_store())

    preview = await importer.preview(rows)
    for diff in preview.rows:
        if diff.status is RowStatus.SAME:
            continue
        changes = ", ".join(f"{c.field}: {c.old!r} -> {c.new!r}" for c in diff.changes)
        line = f"{diff.status.value:<6} {diff.name} ({diff.sku_number or 'no sku'})"
        print(f"{line}  {changes}" if changes else line)
        if diff.suggestions:
            print(f"       did you mean: {', '.join(s.name for s in diff.suggestions)}")
    print(f"\n{preview.counts}")

    if apply:
        stats = await importer.apply(rows)
        logger.info(f"Import finished: {stats.to_dict()}")


def main():
    parser = argparse.ArgumentParser(description="Import ingredients from a CSV sheet")
    parser.add_argument("path", help="CSV file to import")
    parser.add_argument("--apply", action="store_true", help="Write the rows (default: preview)")
    args = parser.parse_args()

    asyncio.run(run_import(args.path, apply=args.apply))


if __name__ == "__main__":
    main()
