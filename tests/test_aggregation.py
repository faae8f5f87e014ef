"""Tests for ledger aggregates."""

from decimal import Decimal

from mali.models.ledger import EntryStatus


class TestGlobalSummary:
    """Tests for global_summary."""

    def test_empty_ledger(self, ledger, owner):
        summary = ledger.global_summary(owner.id)
        assert summary.total_credit == summary.total_debt == summary.net == 0

    def test_net_is_credit_minus_debt(self, ledger, owner):
        ledger.create_entry(owner.id, "credit", "100", "SAR", "Ahmed")
        ledger.create_entry(owner.id, "debt", "30.50", "SAR", "Omar")
        debt = ledger.create_entry(owner.id, "debt", "20", "SAR", "Sara")
        ledger.apply_payment(debt.id, 5)

        summary = ledger.global_summary(owner.id)
        assert summary.total_credit == Decimal("100.00")
        assert summary.total_debt == Decimal("45.50")
        assert summary.net == summary.total_credit - summary.total_debt

    def test_settled_entries_contribute_nothing(self, ledger, owner):
        ledger.create_entry(owner.id, "credit", 40, "SAR", "Ahmed")
        settled = ledger.create_entry(owner.id, "debt", 500, "SAR", "Omar")
        ledger.set_status(settled.id, EntryStatus.SETTLED)

        summary = ledger.global_summary(owner.id)
        assert summary.total_debt == Decimal("0.00")
        assert summary.net == Decimal("40.00")

    def test_mixed_currencies_are_summed_raw(self, ledger, owner):
        ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.create_entry(owner.id, "credit", 100, "USD", "John")
        assert ledger.global_summary(owner.id).total_credit == Decimal("200.00")

    def test_other_accounts_are_ignored(self, ledger, accounts, owner):
        other = accounts.register("other", "pw", "Other")
        ledger.create_entry(other.id, "credit", 100, "SAR", "Ahmed")
        assert ledger.global_summary(owner.id).total_credit == 0


class TestPerCounterpartySummary:
    """Tests for per_counterparty_summary."""

    def test_debt_and_credit_for_same_person(self, ledger, owner):
        """Scenario E."""
        ledger.create_entry(owner.id, "debt", 50, "SAR", "Sara")
        ledger.create_entry(owner.id, "credit", 30, "SAR", "Sara")

        rows = ledger.per_counterparty_summary(owner.id)
        assert len(rows) == 1
        row = rows[0]
        assert row.counterparty == "Sara"
        assert (row.credit, row.debt, row.net) == (30, 50, -20)

    def test_ordered_by_absolute_net(self, ledger, owner):
        ledger.create_entry(owner.id, "credit", 10, "SAR", "Small")
        ledger.create_entry(owner.id, "debt", 300, "SAR", "Big")
        ledger.create_entry(owner.id, "credit", 50, "SAR", "Medium")

        names = [r.counterparty for r in ledger.per_counterparty_summary(owner.id)]
        assert names == ["Big", "Medium", "Small"]

    def test_ties_keep_encounter_order(self, ledger, owner):
        """Encounter order is the newest-first listing order."""
        ledger.create_entry(owner.id, "credit", 10, "SAR", "First")
        ledger.create_entry(owner.id, "debt", 10, "SAR", "Second")
        ledger.create_entry(owner.id, "credit", 10, "SAR", "Third")

        names = [r.counterparty for r in ledger.per_counterparty_summary(owner.id)]
        assert names == ["Third", "Second", "First"]

    def test_settled_only_counterparty_still_listed(self, ledger, owner):
        entry = ledger.create_entry(owner.id, "credit", 10, "SAR", "Done")
        ledger.apply_payment(entry.id, 10)
        ledger.create_entry(owner.id, "debt", 5, "SAR", "Open")

        rows = {r.counterparty: r for r in ledger.per_counterparty_summary(owner.id)}
        assert set(rows) == {"Done", "Open"}
        assert (rows["Done"].credit, rows["Done"].debt, rows["Done"].net) == (0, 0, 0)

    def test_names_are_case_sensitive(self, ledger, owner):
        ledger.create_entry(owner.id, "credit", 10, "SAR", "sara")
        ledger.create_entry(owner.id, "credit", 20, "SAR", "Sara")
        assert len(ledger.per_counterparty_summary(owner.id)) == 2


class TestCounterpartyDetail:
    """Tests for counterparty_detail."""

    def test_detail_lists_all_entries_but_sums_pending(self, ledger, owner):
        paid = ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.apply_payment(paid.id, 100)
        partial = ledger.create_entry(owner.id, "credit", 80, "SAR", "Ahmed")
        ledger.apply_payment(partial.id, 30)
        debt = ledger.create_entry(owner.id, "debt", 20, "SAR", "Ahmed")
        ledger.create_entry(owner.id, "debt", 999, "SAR", "Someone else")

        detail = ledger.counterparty_detail(owner.id, "Ahmed")
        assert [e.id for e in detail.entries] == [debt.id, partial.id, paid.id]
        assert detail.total_credit == Decimal("50.00")
        assert detail.total_debt == Decimal("20.00")
        assert detail.net == Decimal("30.00")

    def test_unknown_counterparty(self, ledger, owner):
        detail = ledger.counterparty_detail(owner.id, "Nobody")
        assert detail.entries == []
        assert detail.net == 0


class TestCurrencyBreakdown:
    """Tests for currency_breakdown."""

    def test_split_by_currency(self, ledger, owner):
        ledger.create_entry(owner.id, "credit", 100, "SAR", "Ahmed")
        ledger.create_entry(owner.id, "debt", 40, "USD", "John")
        ledger.create_entry(owner.id, "credit", 10, "usd", "John")

        breakdown = ledger.currency_breakdown(owner.id)
        assert set(breakdown) == {"SAR", "USD"}
        assert breakdown["SAR"].net == Decimal("100.00")
        assert breakdown["USD"].total_credit == Decimal("10.00")
        assert breakdown["USD"].net == Decimal("-30.00")
