"""The expense store: the ledger engine behind every screen and command.

The store owns the in-memory view of the ledger. Each mutation goes to the
gateway first and only touches the local collection once the gateway call has
returned successfully, so a failed or timed-out call never leaves a partial
local change. After every change the summary is recomputed from scratch.

Gateway failures never escape an operation: they are recorded in
``error_message`` (cleared at the start of every operation) and the operation
returns normally. Cancellation is recorded the same way (``"cancelled"``) and
then re-raised so the caller's task still ends cancelled.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Iterable
from contextlib import asynccontextmanager
from typing import TypeVar

from . import ledger
from .exceptions import GatewayError
from .gateway import LedgerGateway
from .models import DisplayNames, Expense, LedgerSummary, Party, SplitPolicy
from .money import Money

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RECENT_LIMIT = 50


def _describe(error: BaseException) -> str:
    if isinstance(error, TimeoutError):
        return "request timed out"
    return str(error) or type(error).__name__


def _dedupe(expenses: Iterable[Expense]) -> list[Expense]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for expense in expenses:
        if expense.id in seen:
            continue
        seen.add(expense.id)
        unique.append(expense)
    return unique


class ExpenseStore:
    """Owns the expense collection and keeps its summary current."""

    def __init__(
        self,
        gateway: LedgerGateway,
        owner_id: str | None = None,
        display_names: DisplayNames | None = None,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ):
        """Initialize the store with an injected gateway."""
        self.gateway = gateway
        self.owner_id = owner_id
        self.display_names = display_names or DisplayNames()
        self.recent_limit = recent_limit

        self._expenses: list[Expense] = []
        self._summary = LedgerSummary.empty()
        self.is_loading = False
        self.error_message: str | None = None

        # Serializes mutations; queries read without it
        self._lock = asyncio.Lock()

    # ========================================================================
    # State
    # ========================================================================

    @property
    def expenses(self) -> list[Expense]:
        """Snapshot of the collection, newest first."""
        return list(self._expenses)

    @property
    def summary(self) -> LedgerSummary:
        return self._summary

    def _set_expenses(self, expenses: list[Expense]) -> None:
        self._expenses = expenses
        self._summary = ledger.compute_summary(expenses)

    def _replace(self, updated: Expense) -> bool:
        """Swap in ``updated`` for the entry with the same id, if present."""
        for index, expense in enumerate(self._expenses):
            if expense.id == updated.id:
                expenses = list(self._expenses)
                expenses[index] = updated
                self._set_expenses(expenses)
                return True
        return False

    @asynccontextmanager
    async def _operation(self, action: str) -> AsyncIterator[None]:
        """Run one store operation: serialize, track loading, record failure."""
        async with self._lock:
            self.is_loading = True
            self.error_message = None
            try:
                yield
            except (GatewayError, TimeoutError) as e:
                self.error_message = f"Failed to {action}: {_describe(e)}"
                logger.warning(self.error_message)
            except asyncio.CancelledError:
                self.error_message = f"Failed to {action}: cancelled"
                logger.warning(self.error_message)
                raise
            finally:
                self.is_loading = False

    async def _call(self, call: Awaitable[T], timeout: float | None) -> T:
        """
        Await a gateway call, bounded by ``timeout`` seconds if given.

        The bound only takes effect at the gateway's await points, so it
        cannot cut short a blocking backend such as ``SqliteGateway``.
        """
        return await asyncio.wait_for(call, timeout)

    # ========================================================================
    # Operations
    # ========================================================================

    async def add_expense(
        self,
        amount: Money | str | int,
        payer: Party,
        policy: SplitPolicy = SplitPolicy.EQUAL,
        title: str | None = None,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Expense | None:
        """
        Create an expense and persist it.

        The debt is resolved once here. The gateway's copy is inserted at the
        front of the collection only after it confirms the write.

        Returns:
            The stored expense, or None if the gateway call failed
        """
        draft = Expense.create(
            amount=amount,
            payer=payer,
            policy=policy,
            title=title,
            description=description,
            owner_id=self.owner_id,
        )

        created: Expense | None = None
        async with self._operation("add expense"):
            created = await self._call(self.gateway.create_expense(draft), timeout)
            self._set_expenses(
                [created, *(e for e in self._expenses if e.id != created.id)]
            )
            logger.info(
                f"Added expense {created.id}: {created.amount} paid by "
                f"{created.payer} ({created.policy})"
            )
        return created

    async def update_expense(
        self, expense: Expense, timeout: float | None = None
    ) -> Expense | None:
        """
        Replace an expense with a caller-supplied full replacement.

        Nothing is recomputed: the caller provides every field, including the
        debt fields. If the id is not loaded locally the remote update still
        counts as success and the collection is left alone.
        """
        updated: Expense | None = None
        async with self._operation("update expense"):
            updated = await self._call(self.gateway.update_expense(expense), timeout)
            if not self._replace(updated):
                logger.debug(f"Updated expense {expense.id} is not loaded locally")
            logger.info(f"Updated expense {updated.id}")
        return updated

    async def delete_expense(self, expense_id: str, timeout: float | None = None) -> None:
        """Delete an expense remotely, then drop it locally."""
        async with self._operation("delete expense"):
            await self._call(self.gateway.delete_expense(expense_id), timeout)
            self._set_expenses([e for e in self._expenses if e.id != expense_id])
            logger.info(f"Deleted expense {expense_id}")

    async def settle_expense(
        self, expense_id: str, timeout: float | None = None
    ) -> Expense | None:
        """Settle one expense; the gateway stamps the settle time."""
        settled: Expense | None = None
        async with self._operation("settle expense"):
            settled = await self._call(self.gateway.settle_expense(expense_id), timeout)
            self._replace(settled)
            logger.info(f"Settled expense {expense_id}")
        return settled

    async def settle_all(self, timeout: float | None = None) -> int:
        """
        Settle every currently unsettled expense, one at a time.

        Settlement calls run strictly in collection order. The first failure
        stops the loop; expenses already settled stay settled. After a
        complete pass the collection is reloaded from the gateway. With
        nothing to settle this is a successful no-op.

        Returns:
            Number of expenses settled by this call
        """
        settled_count = 0
        async with self._operation("settle expenses"):
            pending = ledger.unsettled(self._expenses)
            if not pending:
                logger.info("No unsettled expenses to settle")
                return 0

            logger.info(f"Settling {len(pending)} expenses")
            for expense in pending:
                settled = await self._call(
                    self.gateway.settle_expense(expense.id), timeout
                )
                self._replace(settled)
                settled_count += 1
                logger.debug(f"Settled {expense.id} ({settled_count}/{len(pending)})")

            listing = await self._call(self.gateway.list_expenses(self.owner_id), timeout)
            self._set_expenses(_dedupe(listing))
            logger.info(f"Settled {settled_count} expenses and reloaded ledger")
        return settled_count

    async def load_expenses(self, timeout: float | None = None) -> None:
        """Replace the collection with the gateway's listing for the owner."""
        async with self._operation("load expenses"):
            listing = await self._call(self.gateway.list_expenses(self.owner_id), timeout)
            self._set_expenses(_dedupe(listing))
            logger.info(f"Loaded {len(self._expenses)} expenses")

    async def delete_all_expenses(self, timeout: float | None = None) -> int:
        """
        Delete every loaded expense, one gateway call per expense.

        The first failure stops the loop. Expenses deleted before it are
        dropped locally, the rest are kept.

        Returns:
            Number of expenses deleted by this call
        """
        deleted: set[str] = set()
        async with self._operation("delete all expenses"):
            try:
                for expense in list(self._expenses):
                    await self._call(self.gateway.delete_expense(expense.id), timeout)
                    deleted.add(expense.id)
            finally:
                if deleted:
                    self._set_expenses(
                        [e for e in self._expenses if e.id not in deleted]
                    )
            logger.info(f"Deleted all {len(deleted)} expenses")
        return len(deleted)

    # ========================================================================
    # Queries (synchronous, read-only)
    # ========================================================================

    def get_expense(self, expense_id: str) -> Expense | None:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def total_spending(self, party: Party) -> Money:
        """Everything ``party`` paid, settled or not (unlike ``summary``)."""
        return ledger.total_spending(self._expenses, party)

    def spending_balance(self) -> Money:
        """Primary's total spending minus secondary's, over all expenses."""
        return ledger.spending_balance(self._expenses)

    def debt_info(self) -> tuple[Party | None, Money]:
        """(who_owes, amount_owed) over the unsettled expenses."""
        return self._summary.who_owes, self._summary.amount_owed

    def expenses_for(self, party: Party) -> list[Expense]:
        return ledger.expenses_paid_by(self._expenses, party)

    def unsettled_expenses(self) -> list[Expense]:
        return ledger.unsettled(self._expenses)

    def recent_expenses(self, limit: int | None = None) -> list[Expense]:
        """The first ``limit`` expenses (default ``recent_limit``)."""
        if limit is None:
            limit = self.recent_limit
        return self._expenses[: max(limit, 0)]

    def display_name(self, party: Party) -> str:
        return self.display_names.name_for(party)
