"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The record store is deliberately dumb: three collections of JSON-compatible
dicts keyed by identifier. No business logic lives here.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from mali.models.audit import AuditEvent


class Collection(str, Enum):
    """The record collections the ledger persists."""
    ACCOUNTS = "accounts"
    SESSIONS = "sessions"
    ENTRIES = "entries"


class RecordStoreInterface(ABC):
    """
    Abstract interface for keyed record storage.

    Any storage implementation (in-memory, Google Sheets, etc.)
    must implement these methods. Records are plain dicts.
    """

    @abstractmethod
    def get(self, collection: Collection, key: str) -> Optional[dict]:
        """
        Retrieve a record by key.

        Returns:
            A copy of the record if found, None otherwise
        """
        pass

    @abstractmethod
    def put(self, collection: Collection, key: str, record: dict) -> None:
        """
        Insert or replace the record stored under ``key``.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, collection: Collection, key: str) -> bool:
        """
        Remove a record.

        Returns:
            True if a record was removed, False if none existed
        """
        pass

    @abstractmethod
    def list(self, collection: Collection) -> list[dict]:
        """
        All records in a collection, in insertion order.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
