"""Pydantic domain models for SpendSplit."""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .money import Money
from .splitting import (
    DebtResolution,
    Party,
    SplitPolicy,
    other_party,
    resolve_debt,
)

__all__ = [
    "DebtResolution",
    "DisplayNames",
    "Expense",
    "LedgerSummary",
    "Party",
    "SplitPolicy",
    "other_party",
    "resolve_debt",
]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


# ============================================================================
# Expense
# ============================================================================


class Expense(BaseModel):
    """A shared expense.

    ``debt_amount`` and ``debtor`` are derived from (amount, payer, policy)
    once, in ``Expense.create``. They are stored as-is afterwards: loading or
    updating an expense never recomputes them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    amount: Money
    payer: Party
    policy: SplitPolicy = SplitPolicy.EQUAL
    title: str | None = None
    description: str | None = None
    occurred_at: datetime = Field(default_factory=utc_now)
    settled: bool = False
    settled_at: datetime | None = None
    owner_id: str | None = None  # persistence scoping only
    debt_amount: Money
    debtor: Party | None = None

    @model_validator(mode="after")
    def _settled_at_iff_settled(self) -> "Expense":
        if self.settled and self.settled_at is None:
            raise ValueError(f"Expense {self.id} is settled but has no settled_at")
        if not self.settled and self.settled_at is not None:
            raise ValueError(f"Expense {self.id} has settled_at but is not settled")
        return self

    @classmethod
    def create(
        cls,
        amount: Money | str | int,
        payer: Party,
        policy: SplitPolicy = SplitPolicy.EQUAL,
        title: str | None = None,
        description: str | None = None,
        owner_id: str | None = None,
        occurred_at: datetime | None = None,
    ) -> "Expense":
        """Build a new, unsettled expense with its debt resolved."""
        amount = Money(amount)
        debt = resolve_debt(amount, payer, policy)
        return cls(
            id=str(uuid.uuid4()),
            amount=amount,
            payer=payer,
            policy=policy,
            title=title,
            description=description,
            occurred_at=occurred_at or utc_now(),
            owner_id=owner_id,
            debt_amount=debt.debt_amount,
            debtor=debt.debtor,
        )

    def mark_settled(self, at: datetime | None = None) -> "Expense":
        """Return a settled copy; amount, payer, policy and debt are untouched."""
        return self.model_copy(update={"settled": True, "settled_at": at or utc_now()})

    @property
    def debt(self) -> DebtResolution:
        return DebtResolution(self.debt_amount, self.debtor)


# ============================================================================
# Summary
# ============================================================================


class LedgerSummary(BaseModel):
    """Totals and net balance over the unsettled expenses.

    ``balance`` is positive when the secondary party owes the primary party.
    """

    model_config = ConfigDict(frozen=True)

    primary_total: Money = Field(default_factory=Money.zero)
    secondary_total: Money = Field(default_factory=Money.zero)
    balance: Money = Field(default_factory=Money.zero)
    who_owes: Party | None = None
    amount_owed: Money = Field(default_factory=Money.zero)

    @model_validator(mode="after")
    def _check_debt_consistency(self) -> "LedgerSummary":
        if self.amount_owed.is_negative:
            raise ValueError(f"amount_owed must be non-negative, got {self.amount_owed}")
        if (self.who_owes is None) != self.amount_owed.is_zero:
            raise ValueError(
                f"who_owes={self.who_owes} is inconsistent with "
                f"amount_owed={self.amount_owed}"
            )
        return self

    @classmethod
    def empty(cls) -> "LedgerSummary":
        return cls()

    def total_for(self, party: Party) -> Money:
        return self.primary_total if party == Party.PRIMARY else self.secondary_total


# ============================================================================
# Display names
# ============================================================================


class DisplayNames(BaseModel):
    """Human names for the two parties, resolved outside the ledger."""

    primary_name: str = "You"
    secondary_name: str = "Partner"

    def name_for(self, party: Party) -> str:
        return self.primary_name if party == Party.PRIMARY else self.secondary_name
