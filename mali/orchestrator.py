"""
Main Orchestrator for the Mali ledger

Ties the components together:
1. Record store + audit storage (memory or Google Sheets)
2. Account manager (register / login / session)
3. Ledger engine (entries, payments, aggregates)
4. Advice flow (session -> entries -> Gemini)

DESIGN DECISION: Nothing here holds business rules. The presentation
layer talks to the account manager and ledger engine directly and asks
the advice flow for prose on demand.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from mali.accounts import AccountManager
from mali.agents import ADVICE_NO_SESSION, AdviceAgent
from mali.audit import AuditLogger
from mali.config import get_settings
from mali.ledger import LedgerEngine
from mali.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreInterface,
    StorageConnectionError,
)


logger = structlog.get_logger(__name__)


class AdviceFlow:
    """
    Orchestrates an advice request for the logged-in user.

    Reads only: the current session and that account's entries.
    """

    def __init__(
        self,
        account_manager: AccountManager,
        ledger: LedgerEngine,
        advice_agent: AdviceAgent,
    ):
        self._accounts = account_manager
        self._ledger = ledger
        self._agent = advice_agent

    async def ask_for_advice(self) -> str:
        """
        Advice text for the current session's ledger.

        Always returns a displayable string.
        """
        account = self._accounts.current_session()
        if account is None:
            return ADVICE_NO_SESSION

        entries = self._ledger.list_entries(account.id)
        return await self._agent.request_advice(entries, account.display_name)


@dataclass
class AppComponents:
    """Everything a presentation layer needs."""

    store: RecordStoreInterface
    audit_logger: AuditLogger
    accounts: AccountManager
    ledger: LedgerEngine
    advice: AdviceFlow


def _create_storage(backend: str) -> tuple[RecordStoreInterface, AuditStorageInterface]:
    if backend == "google_sheets":
        # Imported lazily: gspread is only needed for this backend
        from mali.services.storage.google_sheets import (
            GoogleSheetsAuditStorage,
            GoogleSheetsClient,
            GoogleSheetsRecordStore,
        )

        try:
            client = GoogleSheetsClient()
        except Exception as e:
            logger.error("storage_not_configured", backend=backend, error=str(e))
            raise StorageConnectionError(
                f"Google Sheets backend selected but not configured: {e}"
            ) from e
        return GoogleSheetsRecordStore(client), GoogleSheetsAuditStorage(client)

    return InMemoryRecordStore(), InMemoryAuditStorage()


def create_app_components(
    store: Optional[RecordStoreInterface] = None,
    advice_agent: Optional[AdviceAgent] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Record store to use. When None, the backend named by
               ``storage_backend`` in the settings is created.
               A selected backend that cannot be set up raises
               StorageConnectionError; it never degrades to memory.
        advice_agent: Advice agent to use (tests pass one with a fake model)

    Returns:
        AppComponents with everything wired together
    """
    app_settings = get_settings().app
    audit_storage: Optional[AuditStorageInterface] = None

    if store is None:
        store, audit_storage = _create_storage(app_settings.storage_backend)

    audit_logger = AuditLogger(audit_storage)

    accounts = AccountManager(store, audit_logger)
    ledger = LedgerEngine(
        store,
        audit_logger,
        default_currency=app_settings.default_currency,
    )
    agent = advice_agent or AdviceAgent(
        audit_logger=audit_logger,
        sample_size=app_settings.advice_sample_size,
    )

    return AppComponents(
        store=store,
        audit_logger=audit_logger,
        accounts=accounts,
        ledger=ledger,
        advice=AdviceFlow(accounts, ledger, agent),
    )
