"""Record store interface shared by services."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

Record = dict[str, Any]
RecordList = list[Record]


class Entity(str, Enum):
    """Named record collections."""

    INGREDIENT = "Ingredient"
    PRODUCT_VARIANT = "ProductVariant"
    INVENTORY_ITEM = "InventoryItem"
    INVENTORY_COUNT_LOG = "InventoryCountLog"
    INVENTORY_REPORT = "InventoryReport"
    RECIPE = "Recipe"
    MENU = "Menu"
    ACCOUNT = "Account"
    APP_SETTING = "AppSetting"


class DataStoreError(Exception):
    """Base error raised by record stores."""


class RecordNotFoundError(DataStoreError):
    """No record with the requested id."""

    def __init__(self, entity: Entity, record_id: str):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity.value} {record_id} not found")


class DuplicateRecordError(DataStoreError):
    """A uniqueness constraint rejected the write."""


class DataStore(ABC):
    """
    Async access to entity records.

    Records are plain dicts keyed by field name. Typed views are built from
    them with ``barstock.schemas.parse_records``.
    """

    @abstractmethod
    async def list(
        self,
        entity: Entity,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> RecordList:
        """
        List records of an entity.

        Args:
            entity: Collection to read.
            order_by: Field name, prefixed with "-" for descending order.
            limit: Maximum number of records to return.
        """

    @abstractmethod
    async def filter(self, entity: Entity, **criteria: Any) -> RecordList:
        """Records whose fields equal every given criterion."""

    @abstractmethod
    async def get(self, entity: Entity, record_id: str) -> Record:
        """Fetch one record, raising RecordNotFoundError when absent."""

    @abstractmethod
    async def create(self, entity: Entity, data: Record) -> Record:
        """Insert a record and return it with its id."""

    @abstractmethod
    async def update(self, entity: Entity, record_id: str, data: Record) -> Record:
        """Apply a partial update and return the stored record."""

    @abstractmethod
    async def delete(self, entity: Entity, record_id: str) -> None:
        """Delete a record, raising RecordNotFoundError when absent."""
