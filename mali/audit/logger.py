"""
Audit Logger

DESIGN DECISION: Every significant action in the ledger is logged.
This provides:
1. Complete traceability of balances
2. Debugging capability
3. A history of failed logins and advice requests

The audit logger:
- Gracefully handles failures (doesn't crash the app if logging fails)
- Always writes a structured local log line, persists when storage exists
"""

from typing import Optional

import structlog

from mali.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from mali.models.ledger import Account, LedgerEntry
from mali.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_account_registered(self, account: Account) -> None:
        self.log(AuditEventBuilder.account_registered(account.id, account.username))

    def log_login(self, account: Account) -> None:
        self.log(AuditEventBuilder.login_succeeded(account.id, account.username))

    def log_login_failed(self, username: str) -> None:
        self.log(AuditEventBuilder.login_failed(username))

    def log_logout(self, account_id: Optional[str]) -> None:
        self.log(AuditEventBuilder.logged_out(account_id))

    def log_entry_created(self, entry: LedgerEntry) -> None:
        """Log a new debt or credit."""
        self.log(
            AuditEventBuilder.entry_created(
                entry_id=entry.id,
                account_id=entry.owner_account_id,
                direction=entry.direction.value,
                amount=str(entry.amount),
                currency=entry.currency,
                counterparty=entry.counterparty,
            )
        )

    def log_payment_applied(self, entry: LedgerEntry, payment: str) -> None:
        """Log a (partial) payment against an entry."""
        self.log(
            AuditEventBuilder.payment_applied(
                entry_id=entry.id,
                account_id=entry.owner_account_id,
                payment=payment,
                paid_amount=str(entry.paid_amount),
                status=entry.status.value,
            )
        )

    def log_payment_rejected(
        self,
        entry_id: str,
        account_id: Optional[str],
        payment: str,
        reason: str,
    ) -> None:
        self.log(
            AuditEventBuilder.payment_rejected(
                entry_id=entry_id,
                account_id=account_id,
                payment=payment,
                reason=reason,
            )
        )

    def log_status_overridden(self, entry: LedgerEntry, old_status: str) -> None:
        self.log(
            AuditEventBuilder.status_overridden(
                entry_id=entry.id,
                account_id=entry.owner_account_id,
                old_status=old_status,
                new_status=entry.status.value,
                paid_amount=str(entry.paid_amount),
            )
        )

    def log_entry_deleted(self, entry_id: str, account_id: Optional[str]) -> None:
        self.log(AuditEventBuilder.entry_deleted(entry_id, account_id))

    def log_advice_generated(self, display_name: str, pending_count: int) -> None:
        self.log(AuditEventBuilder.advice_generated(display_name, pending_count))

    def log_advice_failed(self, reason: str, error_message: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.advice_failed(reason, error_message))

    def log_external_service_error(self, service: str, error_message: str) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(service, error_message))
