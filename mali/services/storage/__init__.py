"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend and a Google Sheets backend; the ledger only
ever talks to the interfaces.
"""

from mali.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    RecordStoreInterface,
    StorageConnectionError,
    StorageError,
)
from mali.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Collection",
    "RecordStoreInterface",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
]
