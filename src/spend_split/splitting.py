"""Parties, split policies and the debt each expense creates.

This module is the pure core of the split rules: given who paid, how much and
under which policy, it decides who owes whom and how much. The result is
computed once when an expense is created and stored on it.
"""

from enum import StrEnum
from typing import NamedTuple

from .money import Money


class Party(StrEnum):
    """One of the two people sharing the ledger."""

    PRIMARY = "primary"
    SECONDARY = "secondary"

    def other(self) -> "Party":
        """The other party. ``p.other().other() == p`` for every party."""
        return Party.SECONDARY if self is Party.PRIMARY else Party.PRIMARY


def other_party(party: Party) -> Party:
    """Function form of ``Party.other``."""
    return party.other()


class SplitPolicy(StrEnum):
    """How an expense is shared. Values match the persisted ``split_type``."""

    EQUAL = "equal"
    PAYER_FULL = "full"
    PARTNER_FULL = "partner_full"
    NONE = "no_split"

    @property
    def label(self) -> str:
        return _POLICY_LABELS[self]


_POLICY_LABELS = {
    SplitPolicy.EQUAL: "Split equally",
    SplitPolicy.PAYER_FULL: "Paid in full, partner owes half",
    SplitPolicy.PARTNER_FULL: "Partner paid in full",
    SplitPolicy.NONE: "No split",
}


class DebtResolution(NamedTuple):
    """Outcome of applying a split policy to one expense."""

    debt_amount: Money
    debtor: Party | None


def resolve_debt(
    amount: Money, payer: Party, policy: SplitPolicy
) -> DebtResolution:
    """
    Work out the debt created by a single expense.

    EQUAL and PAYER_FULL produce the same outcome (the non-payer owes half);
    they are kept apart only for display. PARTNER_FULL makes the payer the
    debtor. NONE creates no debt.

    Args:
        amount: Expense amount, any sign
        payer: Who paid
        policy: Split policy

    Returns:
        (debt_amount, debtor), debtor is None when there is no debt
    """
    amount = Money(amount)
    payer = Party(payer)
    policy = SplitPolicy(policy)

    if policy is SplitPolicy.NONE:
        return DebtResolution(Money.zero(), None)

    if policy is SplitPolicy.PARTNER_FULL:
        return DebtResolution(amount.half(), payer)

    # EQUAL and PAYER_FULL
    return DebtResolution(amount.half(), payer.other())
