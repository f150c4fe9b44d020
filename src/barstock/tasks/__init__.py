"""Celery tasks for background job processing."""

from barstock.tasks.inventory import (
    add_menu_to_inventory_task,
    merge_duplicate_groups_task,
    propagate_ingredient_rename_task,
)

__all__ = [
    "add_menu_to_inventory_task",
    "merge_duplicate_groups_task",
    "propagate_ingredient_rename_task",
]
