"""SpendSplit - Track shared expenses between two people and settle who owes whom."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .gateway import LedgerGateway, build_gateway
from .ledger import compute_summary, total_spending
from .models import (
    DisplayNames,
    Expense,
    LedgerSummary,
    Party,
    SplitPolicy,
    resolve_debt,
)
from .money import Money
from .store import ExpenseStore

__all__ = [
    "Settings",
    "load_settings",
    "LedgerGateway",
    "build_gateway",
    "compute_summary",
    "total_spending",
    "DisplayNames",
    "Expense",
    "LedgerSummary",
    "Party",
    "SplitPolicy",
    "resolve_debt",
    "Money",
    "ExpenseStore",
]
