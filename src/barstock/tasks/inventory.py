"""Celery tasks for long-running ingredient and inventory writes."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from barstock.celery_app import celery_app
from barstock.config import get_settings
from barstock.logging_config import LoggingContext, configure_logging, get_logger
from barstock.services.ingredients import (
    merge_duplicate_groups,
    update_recipes_with_new_ingredient_name,
)
from barstock.services.inventory import InventoryService
from barstock.store.sql import SqlDataStore

configure_logging()
logger = get_logger(__name__)


def run_async(coro: Any) -> Any:
    """Run an async coroutine in a synchronous context."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_running():
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor() as executor:
                future = executor.submit(asyncio.run, coro)
                return future.result()
        return loop.run_until_complete(coro)
    except RuntimeError:
        return asyncio.run(coro)


@asynccontextmanager
async def task_store() -> AsyncIterator[SqlDataStore]:
    """Store on a private engine; pooled connections cannot cross event loops."""
    engine = create_async_engine(get_settings().database_url, poolclass=NullPool)
    try:
        yield SqlDataStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    finally:
        await engine.dispose()


async def _merge_groups(groups: list[tuple[str, list[str]]]) -> dict[str, Any]:
    async with task_store() as store:
        result = await merge_duplicate_groups(store, groups)
        return result.to_dict()


async def _add_menu(menu_id: str, account_id: str) -> dict[str, Any]:
    async with task_store() as store:
        result = await InventoryService(store).add_menu_to_inventory(menu_id, account_id)
        return result.to_dict()


async def _rename(old_name: str, new_name: str) -> dict[str, Any]:
    async with task_store() as store:
        result = await update_recipes_with_new_ingredient_name(store, old_name, new_name)
        return result.to_dict()


@celery_app.task(
    bind=True,
    name="barstock.tasks.inventory.merge_duplicate_groups_task",
    acks_late=True,
)
def merge_duplicate_groups_task(self, groups: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Merge confirmed duplicate groups.

    Args:
        groups: Items of the form {"primary_id": ..., "member_ids": [...]}.

    Returns:
        dict with merge counts.
    """
    task_id = self.request.id
    pairs = [(g["primary_id"], list(g.get("member_ids") or [])) for g in groups]

    with LoggingContext(task_id=task_id):
        logger.info(f"Starting merge of {len(pairs)} duplicate group(s)")
        try:
            result = run_async(_merge_groups(pairs))
            logger.info(f"Merge task {task_id} completed: {result}")
            return {"status": "success", "task_id": task_id, **result}
        except Exception as e:
            logger.exception(f"Merge task {task_id} failed: {e}")
            raise


@celery_app.task(
    bind=True,
    name="barstock.tasks.inventory.add_menu_to_inventory_task",
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(ConnectionError,),
    retry_backoff=True,
    acks_late=True,
)
def add_menu_to_inventory_task(self, menu_id: str, account_id: str) -> dict[str, Any]:
    """Track every inventory ingredient of a menu for an account."""
    task_id = self.request.id

    with LoggingContext(task_id=task_id, account_id=account_id):
        logger.info(f"Adding menu {menu_id} to inventory")
        try:
            result = run_async(_add_menu(menu_id, account_id))
            logger.info(f"Add-menu task {task_id} completed: {result}")
            return {"status": "success", "task_id": task_id, **result}
        except Exception as e:
            logger.exception(f"Add-menu task {task_id} failed: {e}")
            raise


@celery_app.task(
    bind=True,
    name="barstock.tasks.inventory.propagate_ingredient_rename_task",
    acks_late=True,
)
def propagate_ingredient_rename_task(self, old_name: str, new_name: str) -> dict[str, Any]:
    """Rewrite recipe references after an ingredient rename."""
    task_id = self.request.id

    with LoggingContext(task_id=task_id):
        try:
            result = run_async(_rename(old_name, new_name))
            return {"status": "success", "task_id": task_id, **result}
        except Exception as e:
            logger.exception(f"Rename task {task_id} failed: {e}")
            raise
