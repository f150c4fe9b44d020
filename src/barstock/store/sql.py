"""SQLAlchemy-backed record store."""

from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from barstock.database import AsyncSessionLocal
from barstock.logging_config import get_logger
from barstock.models import (
    Account,
    AppSetting,
    Base,
    Ingredient,
    InventoryCountLog,
    InventoryItem,
    InventoryReport,
    Menu,
    ProductVariant,
    Recipe,
)
from barstock.store.base import (
    DataStore,
    DataStoreError,
    DuplicateRecordError,
    Entity,
    Record,
    RecordList,
    RecordNotFoundError,
)

logger = get_logger(__name__)

UNIQUE_VIOLATION = "23505"

MODELS: dict[Entity, type[Base]] = {
    Entity.INGREDIENT: Ingredient,
    Entity.PRODUCT_VARIANT: ProductVariant,
    Entity.INVENTORY_ITEM: InventoryItem,
    Entity.INVENTORY_COUNT_LOG: InventoryCountLog,
    Entity.INVENTORY_REPORT: InventoryReport,
    Entity.RECIPE: Recipe,
    Entity.MENU: Menu,
    Entity.ACCOUNT: Account,
    Entity.APP_SETTING: AppSetting,
}


def _columns(model: type[Base]) -> set[str]:
    return {attr.key for attr in inspect(model).column_attrs}


def to_record(obj: Base) -> Record:
    """Plain dict of a model instance's column values."""
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def is_unique_violation(error: IntegrityError) -> bool:
    """True when a unique constraint, not a foreign key or NOT NULL, rejected the write."""
    orig = error.orig
    # asyncpg and psycopg2 both expose the SQLSTATE
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


def integrity_error(model: type[Base], error: IntegrityError) -> DataStoreError:
    """Translate an IntegrityError into the store's error hierarchy."""
    if is_unique_violation(error):
        return DuplicateRecordError(f"{model.__name__} already exists: {error.orig}")
    return DataStoreError(f"{model.__name__} violates a constraint: {error.orig}")


class SqlDataStore(DataStore):
    """
    DataStore over the relational database.

    Every operation runs in its own session so that concurrent writes from
    ``asyncio.gather`` never share one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _model(self, entity: Entity) -> type[Base]:
        return MODELS[Entity(entity)]

    def _known_fields(self, model: type[Base], data: Record) -> Record:
        columns = _columns(model)
        unknown = set(data) - columns
        if unknown:
            logger.debug(f"Ignoring fields not stored on {model.__name__}: {sorted(unknown)}")
        return {k: v for k, v in data.items() if k in columns}

    async def list(
        self,
        entity: Entity,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> RecordList:
        model = self._model(entity)
        stmt = select(model)
        if order_by:
            field = order_by.lstrip("-")
            if field not in _columns(model):
                raise ValueError(f"Cannot order {model.__name__} by unknown field {field!r}")
            column = getattr(model, field)
            stmt = stmt.order_by(column.desc() if order_by.startswith("-") else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [to_record(obj) for obj in result.scalars().all()]

    async def filter(self, entity: Entity, **criteria: Any) -> RecordList:
        model = self._model(entity)
        unknown = set(criteria) - _columns(model)
        if unknown:
            raise ValueError(f"Cannot filter {model.__name__} by {sorted(unknown)}")

        async with self.session_factory() as session:
            result = await session.execute(select(model).filter_by(**criteria))
            return [to_record(obj) for obj in result.scalars().all()]

    async def get(self, entity: Entity, record_id: str) -> Record:
        model = self._model(entity)
        async with self.session_factory() as session:
            obj = await session.get(model, record_id)
            if obj is None:
                raise RecordNotFoundError(Entity(entity), record_id)
            return to_record(obj)

    async def create(self, entity: Entity, data: Record) -> Record:
        model = self._model(entity)
        values = self._known_fields(model, data)
        if values.get("id") is None:
            values.pop("id", None)

        async with self.session_factory() as session:
            obj = model(**values)
            session.add(obj)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise integrity_error(model, e) from e
            await session.refresh(obj)
            return to_record(obj)

    async def update(self, entity: Entity, record_id: str, data: Record) -> Record:
        model = self._model(entity)
        values = self._known_fields(model, data)
        values.pop("id", None)

        async with self.session_factory() as session:
            obj = await session.get(model, record_id)
            if obj is None:
                raise RecordNotFoundError(Entity(entity), record_id)
            for key, value in values.items():
                setattr(obj, key, value)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise integrity_error(model, e) from e
            await session.refresh(obj)
            return to_record(obj)

    async def delete(self, entity: Entity, record_id: str) -> None:
        model = self._model(entity)
        async with self.session_factory() as session:
            obj = await session.get(model, record_id)
            if obj is None:
                raise RecordNotFoundError(Entity(entity), record_id)
            await session.delete(obj)
            await session.commit()


_store: SqlDataStore | None = None


def get_store() -> SqlDataStore:
    """Shared store over the application session factory."""
    global _store
    if _store is None:
        _store = SqlDataStore(AsyncSessionLocal)
    return _store
