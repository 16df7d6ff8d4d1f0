"""Tests for ledger aggregation."""

import copy
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from spend_split.ledger import (
    compute_summary,
    expenses_paid_by,
    outstanding_debt,
    spending_balance,
    total_spending,
    unsettled,
)
from spend_split.models import Expense, LedgerSummary, Party, SplitPolicy
from spend_split.money import Money

SETTLED_AT = datetime(2025, 8, 1, 12, 0, tzinfo=UTC)


def make_expense(amount, payer, policy=SplitPolicy.EQUAL, settled=False, title=None):
    """Build an expense, settled if asked."""
    expense = Expense.create(Money(amount), payer, policy, title=title)
    return expense.mark_settled(SETTLED_AT) if settled else expense


class TestComputeSummary:
    """Tests for compute_summary."""

    def test_empty_ledger(self):
        """No expenses means all zero and nobody owes."""
        assert compute_summary([]) == LedgerSummary.empty()

    def test_all_settled_is_all_square(self):
        """Settled expenses contribute nothing."""
        expenses = [
            make_expense("100", Party.PRIMARY, settled=True),
            make_expense("40", Party.SECONDARY, settled=True),
        ]

        summary = compute_summary(expenses)

        assert summary.primary_total == 0
        assert summary.secondary_total == 0
        assert summary.balance == 0
        assert summary.who_owes is None
        assert summary.amount_owed == 0

    def test_single_equal_expense(self):
        """Primary pays 100 split equally, so secondary owes 50."""
        summary = compute_summary([make_expense("100", Party.PRIMARY)])

        assert summary.primary_total == Money("100")
        assert summary.secondary_total == Money("0")
        assert summary.balance == Money("50")
        assert summary.who_owes == Party.SECONDARY
        assert summary.amount_owed == Money("50")

    def test_settled_expenses_are_ignored(self):
        """Only the unsettled expense counts toward the balance."""
        expenses = [
            make_expense("100", Party.PRIMARY, SplitPolicy.EQUAL, settled=True),
            make_expense("50", Party.SECONDARY, SplitPolicy.EQUAL),
        ]

        summary = compute_summary(expenses)

        assert summary.primary_total == Money("0")
        assert summary.secondary_total == Money("50")
        assert summary.balance == Money("-25")
        assert summary.who_owes == Party.PRIMARY
        assert summary.amount_owed == Money("25")

    def test_mixed_policies(self):
        """Each policy contributes its stored debt."""
        expenses = [
            make_expense("100", Party.PRIMARY, SplitPolicy.EQUAL),
            make_expense("80", Party.SECONDARY, SplitPolicy.PAYER_FULL),
            make_expense("50", Party.SECONDARY, SplitPolicy.PARTNER_FULL),
            make_expense("100", Party.PRIMARY, SplitPolicy.NONE),
        ]

        summary = compute_summary(expenses)

        # Secondary owes 50 + 25, primary owes 40
        assert summary.primary_total == Money("200")
        assert summary.secondary_total == Money("130")
        assert summary.balance == Money("35")
        assert summary.who_owes == Party.SECONDARY
        assert summary.amount_owed == Money("35")

    def test_every_policy_from_both_payers(self):
        """Secondary owes 50 + 40 + 20, primary owes 30, net secondary owes 80."""
        expenses = [
            make_expense("100", Party.PRIMARY, SplitPolicy.EQUAL),
            make_expense("60", Party.SECONDARY, SplitPolicy.EQUAL),
            make_expense("80", Party.PRIMARY, SplitPolicy.PAYER_FULL),
            make_expense("40", Party.SECONDARY, SplitPolicy.PARTNER_FULL),
            make_expense("20", Party.PRIMARY, SplitPolicy.NONE),
            make_expense("30", Party.SECONDARY, SplitPolicy.NONE),
        ]

        summary = compute_summary(expenses)

        assert summary.primary_total == Money("200")
        assert summary.secondary_total == Money("130")
        assert summary.balance == Money("80")
        assert summary.who_owes == Party.SECONDARY
        assert summary.amount_owed == Money("80")

    def test_partner_full_scenario(self):
        """Secondary's partner_full expense plus an equal one from primary."""
        expenses = [
            make_expense("60", Party.PRIMARY, SplitPolicy.EQUAL),
            make_expense("100", Party.SECONDARY, SplitPolicy.PARTNER_FULL),
        ]

        summary = compute_summary(expenses)

        assert summary.balance == Money("80")
        assert summary.who_owes == Party.SECONDARY
        assert summary.amount_owed == Money("80")

    def test_fractional_amounts_stay_exact(self):
        """33.33 and 66.67 split equally leave primary owing 16.67."""
        expenses = [
            make_expense("33.33", Party.PRIMARY),
            make_expense("66.67", Party.SECONDARY),
        ]

        summary = compute_summary(expenses)

        assert summary.balance == Money("-16.67")
        assert summary.who_owes == Party.PRIMARY
        assert summary.amount_owed == Money("16.67")
        assert summary.primary_total + summary.secondary_total == Money("100")

    def test_balanced_debts_cancel(self):
        """Equal debts in both directions mean nobody owes."""
        expenses = [
            make_expense("40", Party.PRIMARY),
            make_expense("40", Party.SECONDARY),
        ]

        summary = compute_summary(expenses)

        assert summary.balance == 0
        assert summary.who_owes is None
        assert summary.amount_owed == 0

    def test_no_split_only_means_nobody_owes(self):
        """NONE expenses change totals but never the balance."""
        expenses = [
            make_expense("70", Party.PRIMARY, SplitPolicy.NONE),
            make_expense("15", Party.SECONDARY, SplitPolicy.NONE),
        ]

        summary = compute_summary(expenses)

        assert summary.primary_total == Money("70")
        assert summary.secondary_total == Money("15")
        assert summary.who_owes is None

    def test_uses_stored_debt_not_policy(self):
        """Debt is read from the stored fields, not re-derived."""
        legacy = Expense(
            id="legacy",
            amount="100",
            payer=Party.PRIMARY,
            policy=SplitPolicy.EQUAL,
            debt_amount="10",
            debtor=Party.SECONDARY,
        )

        assert compute_summary([legacy]).amount_owed == Money("10")

    def test_negative_amount_reverses_direction(self):
        """A refund recorded as a negative amount flips who owes."""
        summary = compute_summary([make_expense("-50", Party.PRIMARY)])

        assert summary.balance == Money("-25")
        assert summary.who_owes == Party.PRIMARY
        assert summary.amount_owed == Money("25")

    @pytest.mark.parametrize("count", [1, 7, 100])
    def test_many_small_amounts_do_not_drift(self, count):
        """Summing many cents stays exact."""
        expenses = [make_expense("0.01", Party.PRIMARY) for _ in range(count)]

        summary = compute_summary(expenses)
        expected = Money(Decimal("0.01") * count)

        assert summary.primary_total == expected
        assert summary.amount_owed == expected.half()


class TestSpendingTotals:
    """Raw totals cover every expense, settled or not."""

    def test_total_spending_includes_settled(self):
        """Settled expenses still count toward raw spending."""
        expenses = [
            make_expense("100", Party.PRIMARY, settled=True),
            make_expense("50", Party.PRIMARY),
            make_expense("30", Party.SECONDARY, settled=True),
        ]

        assert total_spending(expenses, Party.PRIMARY) == Money("150")
        assert total_spending(expenses, Party.SECONDARY) == Money("30")
        assert compute_summary(expenses).primary_total == Money("50")

    def test_spending_balance(self):
        """Primary total minus secondary total."""
        expenses = [
            make_expense("100", Party.PRIMARY, settled=True),
            make_expense("130", Party.SECONDARY),
        ]

        assert spending_balance(expenses) == Money("-30")
        assert spending_balance([]) == Money("0")

    def test_filters(self):
        """unsettled and expenses_paid_by keep the original order."""
        first = make_expense("1", Party.PRIMARY)
        second = make_expense("2", Party.SECONDARY, settled=True)
        third = make_expense("3", Party.PRIMARY)
        expenses = [first, second, third]

        assert unsettled(expenses) == [first, third]
        assert expenses_paid_by(expenses, Party.PRIMARY) == [first, third]
        assert expenses_paid_by(expenses, Party.SECONDARY) == [second]


class TestOutstandingDebt:
    """Tests for outstanding_debt."""

    def test_matches_summary(self):
        """Should return the summary's (who_owes, amount_owed)."""
        expenses = [make_expense("90", Party.SECONDARY)]

        assert outstanding_debt(expenses) == (Party.PRIMARY, Money("45"))
        assert outstanding_debt([]) == (None, Money("0"))


def test_aggregation_does_not_mutate_input():
    """Aggregation is pure: the input list is untouched."""
    expenses = [
        make_expense("10", Party.PRIMARY),
        make_expense("20", Party.SECONDARY, settled=True),
    ]
    snapshot = copy.deepcopy(expenses)

    first = compute_summary(expenses)
    second = compute_summary(expenses)

    assert expenses == snapshot
    assert first == second
