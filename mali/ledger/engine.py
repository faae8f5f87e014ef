"""
Ledger Engine

Owns the bookkeeping model:
1. Entry lifecycle (create, list, delete)
2. Payment application and the pending -> settled transition
3. Aggregates (global, per counterparty, per currency)

OVERPAYMENT POLICY: a payment larger than the remaining balance is
rejected outright and nothing is stored, so ``paid_amount`` can never
exceed ``amount``.

MANUAL OVERRIDE: ``set_status(SETTLED)`` forces ``paid_amount = amount``;
``set_status(PENDING)`` keeps ``paid_amount`` as it is. A pending entry
with a non-zero (even full) paid amount is therefore a valid state.

Only pending entries contribute to aggregates. Amounts in different
currencies are added as raw numbers; nothing is converted.
"""

import threading
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from mali.audit import AuditLogger
from mali.models.ledger import (
    CounterpartyDetail,
    CounterpartySummary,
    EntryDirection,
    EntryStatus,
    LedgerEntry,
    LedgerSummary,
    ZERO,
    to_money,
    utcnow,
)
from mali.services.storage import Collection, RecordStoreInterface


logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class EntryNotFoundError(LedgerError):
    """No entry exists with the given ID."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class InvalidInputError(LedgerError):
    """Entry data is malformed (non-positive amount, blank counterparty...)."""
    pass


class InvalidPaymentError(LedgerError):
    """Payment is non-positive or larger than the remaining balance."""
    pass


def _pending_totals(entries: Iterable[LedgerEntry]) -> tuple[Decimal, Decimal]:
    """(credit, debt) remaining over pending entries only."""
    credit = ZERO
    debt = ZERO
    for entry in entries:
        if entry.status != EntryStatus.PENDING:
            continue
        if entry.direction == EntryDirection.CREDIT:
            credit += entry.remaining
        else:
            debt += entry.remaining
    return credit, debt


def summarize(entries: Iterable[LedgerEntry]) -> LedgerSummary:
    """Pending-only credit/debt/net over any collection of entries."""
    credit, debt = _pending_totals(entries)
    return LedgerSummary(total_credit=credit, total_debt=debt)


class LedgerEngine:
    """
    Entry lifecycle, payments and aggregation on top of a record store.

    Every read goes back to the store; nothing is cached. Mutations on
    one account are serialized by a per-account lock so each payment is
    an atomic read-modify-write even if the engine is shared between
    threads.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: str = "SAR",
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._default_currency = default_currency
        self._clock = clock
        self._locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[account_id]

    def _load(self, entry_id: str) -> LedgerEntry:
        record = self._store.get(Collection.ENTRIES, entry_id)
        if record is None:
            raise EntryNotFoundError(entry_id)
        return LedgerEntry.from_record(record)

    def _save(self, entry: LedgerEntry) -> None:
        self._store.put(Collection.ENTRIES, entry.id, entry.to_record())

    # -------------------------------------------------------------------------
    # Entry lifecycle
    # -------------------------------------------------------------------------

    def list_entries(self, account_id: str) -> list[LedgerEntry]:
        """All entries owned by the account, newest first."""
        entries = [
            LedgerEntry.from_record(record)
            for record in self._store.list(Collection.ENTRIES)
            if record.get("owner_account_id") == account_id
        ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    def get_entry(self, entry_id: str) -> LedgerEntry:
        """
        Raises:
            EntryNotFoundError: If the ID is unknown
        """
        return self._load(entry_id)

    def create_entry(
        self,
        account_id: str,
        direction: Union[EntryDirection, str],
        amount: Any,
        currency: Optional[str] = None,
        counterparty: str = "",
        description: str = "",
        due_date: Optional[date] = None,
    ) -> LedgerEntry:
        """
        Record a new debt or credit.

        Raises:
            InvalidInputError: amount <= 0 or not a number, blank
                counterparty, unknown direction, bad currency
        """
        try:
            direction = EntryDirection(direction)
        except ValueError:
            raise InvalidInputError(f"Unknown direction: {direction!r}")

        try:
            money = to_money(amount)
        except ValueError as e:
            raise InvalidInputError(str(e))
        if money <= 0:
            raise InvalidInputError("Amount must be greater than zero")

        if not counterparty or not counterparty.strip():
            raise InvalidInputError("Counterparty name is required")

        try:
            entry = LedgerEntry(
                owner_account_id=account_id,
                direction=direction,
                amount=money,
                currency=(currency or self._default_currency).strip(),
                counterparty=counterparty,
                description=description or "",
                created_at=self._clock(),
                due_date=due_date,
            )
        except ValidationError as e:
            raise InvalidInputError(str(e)) from e

        with self._lock_for(account_id):
            self._save(entry)

        logger.info(
            "entry_created",
            entry_id=entry.id,
            direction=entry.direction.value,
            amount=str(entry.amount),
            currency=entry.currency,
        )
        if self._audit_logger:
            self._audit_logger.log_entry_created(entry)

        return entry

    def delete_entry(self, entry_id: str) -> bool:
        """
        Remove an entry. Unknown IDs are a silent no-op.

        Returns:
            True if an entry was removed
        """
        record = self._store.get(Collection.ENTRIES, entry_id)
        if record is None:
            return False

        owner = record.get("owner_account_id", "")
        with self._lock_for(owner):
            removed = self._store.delete(Collection.ENTRIES, entry_id)

        if removed and self._audit_logger:
            self._audit_logger.log_entry_deleted(entry_id, owner)
        return removed

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def _reject_payment(
        self,
        entry_id: str,
        account_id: Optional[str],
        payment: Any,
        reason: str,
    ) -> InvalidPaymentError:
        if self._audit_logger:
            self._audit_logger.log_payment_rejected(entry_id, account_id, str(payment), reason)
        return InvalidPaymentError(reason)

    def apply_payment(self, entry_id: str, payment_amount: Any) -> LedgerEntry:
        """
        Add a payment to an entry and settle it once fully paid.

        An entry reopened with ``set_status(PENDING)`` after being fully
        paid has nothing remaining, so every payment on it is rejected;
        only ``set_status(SETTLED)`` closes it again.

        Raises:
            EntryNotFoundError: If the ID is unknown
            InvalidPaymentError: If the payment is <= 0, not a number,
                or larger than the remaining balance
        """
        owner = self._load(entry_id).owner_account_id

        try:
            payment = to_money(payment_amount)
        except ValueError as e:
            raise self._reject_payment(entry_id, owner, payment_amount, str(e))
        if payment <= 0:
            raise self._reject_payment(
                entry_id, owner, payment, "Payment must be greater than zero"
            )

        with self._lock_for(owner):
            # Re-read under the lock; the entry may have changed or gone
            entry = self._load(entry_id)

            if payment > entry.remaining:
                raise self._reject_payment(
                    entry_id,
                    owner,
                    payment,
                    f"Payment {payment} exceeds remaining balance {entry.remaining}",
                )

            entry.paid_amount = entry.paid_amount + payment
            entry.status = (
                EntryStatus.SETTLED if entry.is_fully_paid else EntryStatus.PENDING
            )
            self._save(entry)

        logger.info(
            "payment_applied",
            entry_id=entry.id,
            payment=str(payment),
            paid_amount=str(entry.paid_amount),
            status=entry.status.value,
        )
        if self._audit_logger:
            self._audit_logger.log_payment_applied(entry, str(payment))

        return entry

    def set_status(self, entry_id: str, status: Union[EntryStatus, str]) -> LedgerEntry:
        """
        Manually mark an entry settled or pending.

        SETTLED forces paid_amount to the full amount. PENDING leaves
        paid_amount untouched, reopening a (partially) paid entry.

        Raises:
            EntryNotFoundError: If the ID is unknown
            InvalidInputError: If the status is unknown
        """
        try:
            status = EntryStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown status: {status!r}")

        owner = self._load(entry_id).owner_account_id
        with self._lock_for(owner):
            entry = self._load(entry_id)
            old_status = entry.status.value

            if status == EntryStatus.SETTLED:
                entry.paid_amount = entry.amount
            entry.status = status
            self._save(entry)

        if self._audit_logger:
            self._audit_logger.log_status_overridden(entry, old_status)

        return entry

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def global_summary(self, account_id: str) -> LedgerSummary:
        """Remaining credit, debt and net across all pending entries."""
        return summarize(self.list_entries(account_id))

    def per_counterparty_summary(self, account_id: str) -> list[CounterpartySummary]:
        """
        One row per counterparty name, largest absolute net first.

        Every entry is used to discover names (so a counterparty whose
        entries are all settled still shows up with zeros) but only
        pending entries add to the sums. Ties keep encounter order.
        """
        groups: dict[str, list[LedgerEntry]] = {}
        for entry in self.list_entries(account_id):
            groups.setdefault(entry.counterparty, []).append(entry)

        rows = []
        for name, entries in groups.items():
            credit, debt = _pending_totals(entries)
            rows.append(CounterpartySummary(counterparty=name, credit=credit, debt=debt))

        rows.sort(key=lambda row: abs(row.net), reverse=True)
        return rows

    def counterparty_detail(self, account_id: str, counterparty: str) -> CounterpartyDetail:
        """All entries for one exact counterparty name plus pending totals."""
        entries = [
            e for e in self.list_entries(account_id)
            if e.counterparty == counterparty
        ]
        credit, debt = _pending_totals(entries)
        return CounterpartyDetail(
            counterparty=counterparty,
            entries=entries,
            total_credit=credit,
            total_debt=debt,
        )

    def currency_breakdown(self, account_id: str) -> dict[str, LedgerSummary]:
        """Pending totals split by currency label (no conversion)."""
        by_currency: dict[str, list[LedgerEntry]] = {}
        for entry in self.list_entries(account_id):
            by_currency.setdefault(entry.currency, []).append(entry)
        return {currency: summarize(entries) for currency, entries in by_currency.items()}
