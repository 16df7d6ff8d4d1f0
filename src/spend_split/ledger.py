"""Core ledger aggregation: totals, net balance and who owes whom.

Everything here is a pure function over a sequence of expenses: no I/O and no
mutation. Two notions of "total" exist and are kept apart on purpose:

- ``compute_summary`` looks at unsettled expenses only. It answers "what is
  outstanding right now".
- ``total_spending`` / ``spending_balance`` look at every expense, settled or
  not. They answer "how much has each person paid overall".
"""

from collections.abc import Iterable, Sequence

from .models import Expense, LedgerSummary, Party
from .money import Money


def unsettled(expenses: Iterable[Expense]) -> list[Expense]:
    """Expenses that have not been settled, in their original order."""
    return [expense for expense in expenses if not expense.settled]


def expenses_paid_by(expenses: Iterable[Expense], party: Party) -> list[Expense]:
    """Expenses paid by ``party``, in their original order."""
    return [expense for expense in expenses if expense.payer == party]


def total_spending(expenses: Iterable[Expense], party: Party) -> Money:
    """Raw amount paid by ``party`` over all expenses, settled or not."""
    return Money.total(e.amount for e in expenses if e.payer == party)


def spending_balance(expenses: Sequence[Expense]) -> Money:
    """Primary's total spending minus secondary's, over all expenses."""
    return total_spending(expenses, Party.PRIMARY) - total_spending(
        expenses, Party.SECONDARY
    )


def compute_summary(expenses: Iterable[Expense]) -> LedgerSummary:
    """
    Compute the settlement-aware ledger summary.

    Steps:
    1. Keep unsettled expenses only
    2. Total the raw amounts each party paid
    3. Accumulate each expense's stored debt against its debtor
    4. balance = owed by secondary - owed by primary
    5. Positive balance means secondary owes, negative means primary owes

    Args:
        expenses: Any collection of expenses

    Returns:
        The summary; all zero with nobody owing for empty or all-settled input
    """
    open_expenses = unsettled(expenses)

    primary_total = total_spending(open_expenses, Party.PRIMARY)
    secondary_total = total_spending(open_expenses, Party.SECONDARY)

    owed_by = {Party.PRIMARY: Money.zero(), Party.SECONDARY: Money.zero()}
    for expense in open_expenses:
        if expense.debtor is None:
            continue
        owed_by[expense.debtor] = owed_by[expense.debtor] + expense.debt_amount

    balance = owed_by[Party.SECONDARY] - owed_by[Party.PRIMARY]

    if balance.is_positive:
        who_owes: Party | None = Party.SECONDARY
        amount_owed = balance
    elif balance.is_negative:
        who_owes = Party.PRIMARY
        amount_owed = -balance
    else:
        who_owes = None
        amount_owed = Money.zero()

    return LedgerSummary(
        primary_total=primary_total,
        secondary_total=secondary_total,
        balance=balance,
        who_owes=who_owes,
        amount_owed=amount_owed,
    )


def outstanding_debt(expenses: Iterable[Expense]) -> tuple[Party | None, Money]:
    """(who_owes, amount_owed) over the unsettled expenses."""
    summary = compute_summary(expenses)
    return summary.who_owes, summary.amount_owed
