"""
Data Models Package

This package contains all Pydantic models used by the Mali ledger.
All data flowing through the system must conform to these schemas.
"""

from mali.models.ledger import (
    Account,
    AdviceSampleItem,
    AdviceSnapshot,
    CounterpartyDetail,
    CounterpartySummary,
    EntryDirection,
    EntryStatus,
    LedgerEntry,
    LedgerSummary,
    Session,
    to_money,
)
from mali.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AdviceSampleItem",
    "AdviceSnapshot",
    "CounterpartyDetail",
    "CounterpartySummary",
    "EntryDirection",
    "EntryStatus",
    "LedgerEntry",
    "LedgerSummary",
    "Session",
    "to_money",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
