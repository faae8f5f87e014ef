"""
Audit Models for the Mali ledger

Every create, payment, status override and delete is recorded.
This provides:
1. Traceability of how a balance came to be
2. Debugging information when things go wrong
3. A record of failed logins and failed advice requests

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_REGISTERED = "account_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGGED_OUT = "logged_out"

    # Ledger
    ENTRY_CREATED = "entry_created"
    PAYMENT_APPLIED = "payment_applied"
    PAYMENT_REJECTED = "payment_rejected"
    STATUS_OVERRIDDEN = "status_overridden"
    ENTRY_DELETED = "entry_deleted"

    # Advice
    ADVICE_GENERATED = "advice_generated"
    ADVICE_FAILED = "advice_failed"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'account')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    account_id: Optional[str] = Field(
        default=None,
        description="Account on whose behalf the action ran"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "account_id": self.account_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         account_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.account_id or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_created(entry)
        event = AuditEventBuilder.payment_applied(entry, payment)
    """

    @staticmethod
    def account_registered(account_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_REGISTERED,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            description=f"Account registered: {username}",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(account_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            description=f"Login: {username}",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            description=f"Failed login attempt for: {username}",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def logged_out(account_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGGED_OUT,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            description="Session cleared",
            is_user_action=True,
        )

    @staticmethod
    def entry_created(
        entry_id: str,
        account_id: str,
        direction: str,
        amount: str,
        currency: str,
        counterparty: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            entity_type="entry",
            entity_id=entry_id,
            account_id=account_id,
            description=f"{direction.capitalize()} recorded: {counterparty} - {amount} {currency}",
            details={
                "direction": direction,
                "amount": amount,
                "currency": currency,
                "counterparty": counterparty,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_applied(
        entry_id: str,
        account_id: str,
        payment: str,
        paid_amount: str,
        status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_APPLIED,
            entity_type="entry",
            entity_id=entry_id,
            account_id=account_id,
            description=f"Payment of {payment} applied, entry is {status}",
            details={
                "payment": payment,
                "paid_amount": paid_amount,
                "status": status,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_rejected(
        entry_id: str,
        account_id: Optional[str],
        payment: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=entry_id,
            account_id=account_id,
            description="Payment rejected",
            details={"payment": payment},
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def status_overridden(
        entry_id: str,
        account_id: str,
        old_status: str,
        new_status: str,
        paid_amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATUS_OVERRIDDEN,
            entity_type="entry",
            entity_id=entry_id,
            account_id=account_id,
            description=f"Status changed manually: {old_status} -> {new_status}",
            details={
                "old_status": old_status,
                "new_status": new_status,
                "paid_amount": paid_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(entry_id: str, account_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            account_id=account_id,
            description="Entry deleted",
            is_user_action=True,
        )

    @staticmethod
    def advice_generated(account_name: str, pending_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            entity_type="advice",
            description=f"Advice generated for {account_name}",
            details={"pending_count": pending_count},
        )

    @staticmethod
    def advice_failed(reason: str, error_message: Optional[str] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="advice",
            description=f"Advice unavailable: {reason}",
            details={"reason": reason},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(service: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
        )
