"""Shared fixtures for SpendSplit tests."""

import asyncio
from collections import Counter

import pytest

from spend_split.db import Database, SqliteGateway
from spend_split.exceptions import TransportFailure
from spend_split.models import Expense
from spend_split.store import ExpenseStore


class RecordingGateway:
    """Wraps a real gateway, recording calls and failing or stalling on demand."""

    def __init__(self, inner: SqliteGateway):
        self.inner = inner
        self.calls: list[tuple[str, str | None]] = []
        self._counts: Counter[str] = Counter()
        self._failures: dict[tuple[str, int], Exception] = {}
        self._delays: dict[str, float] = {}

    def fail(self, method: str, on_call: int = 1, error: Exception | None = None):
        """Make the ``on_call``-th call to ``method`` raise ``error``."""
        self._failures[(method, on_call)] = error or TransportFailure("connection reset")

    def stall(self, method: str, seconds: float):
        """Make every call to ``method`` sleep before reaching the store."""
        self._delays[method] = seconds

    def calls_to(self, method: str) -> list[str | None]:
        return [arg for name, arg in self.calls if name == method]

    async def _enter(self, method: str, arg: str | None):
        self._counts[method] += 1
        self.calls.append((method, arg))
        if method in self._delays:
            await asyncio.sleep(self._delays[method])
        error = self._failures.get((method, self._counts[method]))
        if error is not None:
            raise error

    async def list_expenses(self, owner_id: str | None = None) -> list[Expense]:
        await self._enter("list_expenses", owner_id)
        return await self.inner.list_expenses(owner_id)

    async def create_expense(self, draft: Expense) -> Expense:
        await self._enter("create_expense", draft.id)
        return await self.inner.create_expense(draft)

    async def update_expense(self, expense: Expense) -> Expense:
        await self._enter("update_expense", expense.id)
        return await self.inner.update_expense(expense)

    async def delete_expense(self, expense_id: str) -> None:
        await self._enter("delete_expense", expense_id)
        await self.inner.delete_expense(expense_id)

    async def settle_expense(self, expense_id: str) -> Expense:
        await self._enter("settle_expense", expense_id)
        return await self.inner.settle_expense(expense_id)


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def sqlite_gateway(db):
    """Local gateway over the temporary database."""
    return SqliteGateway(db)


@pytest.fixture
def gateway(sqlite_gateway):
    """Recording gateway over the temporary database."""
    return RecordingGateway(sqlite_gateway)


@pytest.fixture
def store(gateway):
    """An ExpenseStore wired to the recording gateway."""
    return ExpenseStore(gateway)
