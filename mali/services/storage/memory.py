"""
In-memory storage

Used by tests and by the default ``memory`` backend. State lives only
as long as the process.
"""

import copy
from typing import Optional

from mali.models.audit import AuditEvent
from mali.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    RecordStoreInterface,
)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Dict-backed record store.

    Records are deep-copied on the way in and out so callers can
    never mutate stored state by accident.
    """

    def __init__(self):
        self._collections: dict[Collection, dict[str, dict]] = {
            collection: {} for collection in Collection
        }

    def get(self, collection: Collection, key: str) -> Optional[dict]:
        record = self._collections[Collection(collection)].get(key)
        return copy.deepcopy(record) if record is not None else None

    def put(self, collection: Collection, key: str, record: dict) -> None:
        self._collections[Collection(collection)][key] = copy.deepcopy(record)

    def delete(self, collection: Collection, key: str) -> bool:
        return self._collections[Collection(collection)].pop(key, None) is not None

    def list(self, collection: Collection) -> list[dict]:
        return [copy.deepcopy(r) for r in self._collections[Collection(collection)].values()]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        # Append order is chronological
        return list(reversed(self.events))[:limit]
