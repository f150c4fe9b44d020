"""Entity record stores."""

from barstock.store.base import (
    DataStore,
    DataStoreError,
    DuplicateRecordError,
    Entity,
    Record,
    RecordList,
    RecordNotFoundError,
)

__all__ = [
    "DataStore",
    "DataStoreError",
    "DuplicateRecordError",
    "Entity",
    "Record",
    "RecordList",
    "RecordNotFoundError",
]
