"""Tests for entry lifecycle and payment application."""

import threading
from decimal import Decimal

import pytest

from mali.ledger import (
    EntryNotFoundError,
    InvalidInputError,
    InvalidPaymentError,
)
from mali.models.audit import AuditEventType
from mali.models.ledger import EntryDirection, EntryStatus
from mali.services.storage import Collection


class TestCreateEntry:
    """Tests for entry creation."""

    def test_create_sets_defaults(self, ledger, owner, store):
        entry = ledger.create_entry(
            owner.id, "credit", 100, "SAR", "Ahmed", "lunch money"
        )
        assert entry.paid_amount == Decimal("0.00")
        assert entry.status == EntryStatus.PENDING
        assert entry.direction == EntryDirection.CREDIT
        assert entry.amount == Decimal("100.00")
        assert store.get(Collection.ENTRIES, entry.id)["counterparty"] == "Ahmed"

    def test_default_currency(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "debt", "12.50", counterparty="Omar")
        assert entry.currency == "SAR"

    @pytest.mark.parametrize("amount", [0, -5, "0.001", "abc", None])
    def test_rejects_bad_amounts(self, ledger, owner, store, amount):
        with pytest.raises(InvalidInputError):
            ledger.create_entry(owner.id, "credit", amount, "SAR", "Ahmed")
        assert store.list(Collection.ENTRIES) == []

    @pytest.mark.parametrize("name", ["", "   "])
    def test_rejects_blank_counterparty(self, ledger, owner, name):
        with pytest.raises(InvalidInputError):
            ledger.create_entry(owner.id, "credit", 10, "SAR", name)

    def test_rejects_unknown_direction(self, ledger, owner):
        with pytest.raises(InvalidInputError):
            ledger.create_entry(owner.id, "loan", 10, "SAR", "Ahmed")

    def test_rejects_overlong_currency(self, ledger, owner):
        with pytest.raises(InvalidInputError):
            ledger.create_entry(owner.id, "credit", 10, "NOT-A-CURRENCY", "Ahmed")

    def test_creation_is_audited(self, ledger, owner, audit_storage):
        entry = ledger.create_entry(owner.id, "credit", 10, "SAR", "Ahmed")
        events = audit_storage.get_events_by_entity("entry", entry.id)
        assert [e.event_type for e in events] == [AuditEventType.ENTRY_CREATED]


class TestListAndDelete:
    """Tests for listing and deletion."""

    def test_list_is_newest_first_and_per_owner(self, ledger, accounts):
        alice = accounts.register("alice", "pw", "Alice")
        bob = accounts.register("bob", "pw", "Bob")
        first = ledger.create_entry(alice.id, "credit", 1, "SAR", "A")
        ledger.create_entry(bob.id, "credit", 2, "SAR", "B")
        second = ledger.create_entry(alice.id, "debt", 3, "SAR", "C")

        assert [e.id for e in ledger.list_entries(alice.id)] == [second.id, first.id]

    def test_list_reflects_store_changes(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "credit", 1, "SAR", "A")
        assert len(ledger.list_entries(owner.id)) == 1
        ledger.delete_entry(entry.id)
        assert ledger.list_entries(owner.id) == []

    def test_delete_unknown_is_noop(self, ledger, owner, store):
        """Deleting a missing id twice leaves the same state as once."""
        ledger.create_entry(owner.id, "credit", 1, "SAR", "A")
        before = store.list(Collection.ENTRIES)

        assert ledger.delete_entry("missing") is False
        after_once = store.list(Collection.ENTRIES)
        assert ledger.delete_entry("missing") is False
        after_twice = store.list(Collection.ENTRIES)

        assert before == after_once == after_twice

    def test_delete_existing(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "credit", 1, "SAR", "A")
        assert ledger.delete_entry(entry.id) is True
        with pytest.raises(EntryNotFoundError):
            ledger.get_entry(entry.id)


class TestApplyPayment:
    """Tests for payments and settlement."""

    def test_partial_then_full_payment(self, ledger, owner):
        """Scenarios A, B and C."""
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        summary = ledger.global_summary(owner.id)
        assert (summary.total_credit, summary.total_debt, summary.net) == (100, 0, 100)

        entry = ledger.apply_payment(entry.id, 40)
        assert entry.paid_amount == Decimal("40.00")
        assert entry.status == EntryStatus.PENDING
        assert entry.remaining == Decimal("60.00")
        assert ledger.global_summary(owner.id).total_credit == Decimal("60.00")

        entry = ledger.apply_payment(entry.id, 60)
        assert entry.status == EntryStatus.SETTLED
        assert entry.remaining == Decimal("0.00")
        assert ledger.global_summary(owner.id).total_credit == Decimal("0.00")

    def test_payment_is_persisted(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "debt", 50, "USD", "Sara")
        ledger.apply_payment(entry.id, "12.25")
        assert ledger.get_entry(entry.id).paid_amount == Decimal("12.25")

    def test_unknown_entry(self, ledger):
        with pytest.raises(EntryNotFoundError):
            ledger.apply_payment("missing", 10)

    @pytest.mark.parametrize("payment", [0, -1, "abc"])
    def test_non_positive_payment(self, ledger, owner, payment):
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        with pytest.raises(InvalidPaymentError):
            ledger.apply_payment(entry.id, payment)
        assert ledger.get_entry(entry.id).paid_amount == Decimal("0.00")

    def test_overpayment_rejected_and_nothing_stored(self, ledger, owner, audit_storage):
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.apply_payment(entry.id, 70)

        with pytest.raises(InvalidPaymentError):
            ledger.apply_payment(entry.id, "30.01")

        stored = ledger.get_entry(entry.id)
        assert stored.paid_amount == Decimal("70.00")
        assert stored.status == EntryStatus.PENDING
        recent = audit_storage.get_recent_events(limit=1)[0]
        assert recent.event_type == AuditEventType.PAYMENT_REJECTED

    def test_payment_on_settled_entry_rejected(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "credit", 10, "SAR", "Ahmed")
        ledger.apply_payment(entry.id, 10)
        with pytest.raises(InvalidPaymentError):
            ledger.apply_payment(entry.id, 1)

    def test_remaining_never_negative_and_paid_monotonic(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "debt", "10.00", "SAR", "Omar")
        previous = entry.paid_amount
        for payment in ["0.10"] * 30 + ["5", "3", "2"]:
            try:
                entry = ledger.apply_payment(entry.id, payment)
            except InvalidPaymentError:
                entry = ledger.get_entry(entry.id)
            assert entry.paid_amount >= previous
            assert entry.amount - entry.paid_amount >= 0
            previous = entry.paid_amount
        assert entry.paid_amount == Decimal("10.00")
        assert entry.status == EntryStatus.SETTLED

    def test_concurrent_payments_do_not_lose_updates(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")

        def pay():
            for _ in range(10):
                ledger.apply_payment(entry.id, 1)

        threads = [threading.Thread(target=pay) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert ledger.get_entry(entry.id).paid_amount == Decimal("50.00")


class TestSetStatus:
    """Tests for the manual status override."""

    def test_settle_forces_full_payment(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.apply_payment(entry.id, 30)
        entry = ledger.set_status(entry.id, EntryStatus.SETTLED)
        assert entry.paid_amount == Decimal("100.00")
        assert entry.remaining == Decimal("0.00")

    def test_reopen_keeps_paid_amount(self, ledger, owner):
        """A reopened entry may be pending with paid == amount."""
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.set_status(entry.id, "settled")
        entry = ledger.set_status(entry.id, "pending")
        assert entry.status == EntryStatus.PENDING
        assert entry.paid_amount == Decimal("100.00")
        assert ledger.global_summary(owner.id).total_credit == Decimal("0.00")

    def test_reopened_fully_paid_entry_only_closes_by_override(self, ledger, owner):
        """Nothing remains to pay, so only set_status(SETTLED) closes it."""
        entry = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.apply_payment(entry.id, 100)
        ledger.set_status(entry.id, "pending")

        with pytest.raises(InvalidPaymentError):
            ledger.apply_payment(entry.id, "0.01")
        assert ledger.get_entry(entry.id).status == EntryStatus.PENDING

        entry = ledger.set_status(entry.id, "settled")
        assert entry.status == EntryStatus.SETTLED
        assert entry.paid_amount == Decimal("100.00")

    def test_reopen_partial(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "debt", 80, "SAR", "Omar")
        ledger.apply_payment(entry.id, 20)
        entry = ledger.set_status(entry.id, EntryStatus.PENDING)
        assert entry.paid_amount == Decimal("20.00")
        assert ledger.global_summary(owner.id).total_debt == Decimal("60.00")

    def test_unknown_status(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "debt", 80, "SAR", "Omar")
        with pytest.raises(InvalidInputError):
            ledger.set_status(entry.id, "archived")

    def test_unknown_entry(self, ledger):
        with pytest.raises(EntryNotFoundError):
            ledger.set_status("missing", EntryStatus.SETTLED)

    def test_override_is_audited(self, ledger, owner, audit_storage):
        entry = ledger.create_entry(owner.id, "debt", 80, "SAR", "Omar")
        ledger.set_status(entry.id, EntryStatus.SETTLED)
        events = audit_storage.get_events_by_entity("entry", entry.id)
        assert events[-1].event_type == AuditEventType.STATUS_OVERRIDDEN
        assert events[-1].details["old_status"] == "pending"
