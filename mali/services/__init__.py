"""Services package."""

from mali.services.storage import (
    AuditStorageInterface,
    Collection,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "Collection",
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "RecordStoreInterface",
    "StorageConnectionError",
    "StorageError",
]
