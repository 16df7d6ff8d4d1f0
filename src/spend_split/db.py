"""SQLite storage for SpendSplit, and the local ledger gateway built on it."""

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from .exceptions import NotFound, TransportFailure
from .models import Expense, utc_now

logger = logging.getLogger(__name__)

_EXPENSE_COLUMNS = """
    id, amount, payer, policy, title, description, occurred_at,
    settled, settled_at, owner_id, debt_amount, debtor
"""


def _to_utc_iso(value: datetime) -> str:
    """Normalize a datetime to an ISO string in UTC (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Amounts are stored as decimal strings so they round-trip exactly
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                amount TEXT NOT NULL,
                payer TEXT NOT NULL,
                policy TEXT NOT NULL,
                title TEXT,
                description TEXT,
                occurred_at TIMESTAMP NOT NULL,
                settled INTEGER NOT NULL DEFAULT 0,
                settled_at TIMESTAMP,
                owner_id TEXT,
                debt_amount TEXT NOT NULL,
                debtor TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_expenses_owner_date
            ON expenses (owner_id, occurred_at DESC)
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Row mapping
    # ========================================================================

    @staticmethod
    def _row_to_expense(row: sqlite3.Row) -> Expense:
        return Expense(
            id=row["id"],
            amount=row["amount"],
            payer=row["payer"],
            policy=row["policy"],
            title=row["title"],
            description=row["description"],
            occurred_at=datetime.fromisoformat(row["occurred_at"]),
            settled=bool(row["settled"]),
            settled_at=(
                datetime.fromisoformat(row["settled_at"]) if row["settled_at"] else None
            ),
            owner_id=row["owner_id"],
            debt_amount=row["debt_amount"],
            debtor=row["debtor"],
        )

    @staticmethod
    def _expense_params(expense: Expense) -> tuple:
        return (
            str(expense.amount),
            expense.payer.value,
            expense.policy.value,
            expense.title,
            expense.description,
            _to_utc_iso(expense.occurred_at),
            int(expense.settled),
            _to_utc_iso(expense.settled_at) if expense.settled_at else None,
            expense.owner_id,
            str(expense.debt_amount),
            expense.debtor.value if expense.debtor else None,
        )

    # ========================================================================
    # Expense operations
    # ========================================================================

    def get_expense(self, expense_id: str, owner_id: str | None = None) -> Expense | None:
        """Get an expense by id, optionally scoped to an owner."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT {_EXPENSE_COLUMNS}
            FROM expenses
            WHERE id = ? AND (? IS NULL OR owner_id = ?)
            """,
            (expense_id, owner_id, owner_id),
        )
        row = cursor.fetchone()
        return self._row_to_expense(row) if row else None

    def list_expenses(self, owner_id: str | None = None) -> list[Expense]:
        """List expenses newest first, optionally scoped to an owner."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT {_EXPENSE_COLUMNS}
            FROM expenses
            WHERE (? IS NULL OR owner_id = ?)
            ORDER BY occurred_at DESC
            """,
            (owner_id, owner_id),
        )
        return [self._row_to_expense(row) for row in cursor.fetchall()]

    def insert_expense(self, expense: Expense) -> None:
        """Insert a new expense row."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            INSERT INTO expenses ({_EXPENSE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (expense.id, *self._expense_params(expense)),
        )
        self.conn.commit()

    def update_expense(self, expense: Expense, owner_id: str | None = None) -> int:
        """Replace every stored field of an expense. Returns rows affected."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE expenses SET
                amount = ?, payer = ?, policy = ?, title = ?, description = ?,
                occurred_at = ?, settled = ?, settled_at = ?, owner_id = ?,
                debt_amount = ?, debtor = ?
            WHERE id = ? AND (? IS NULL OR owner_id = ?)
            """,
            (*self._expense_params(expense), expense.id, owner_id, owner_id),
        )
        self.conn.commit()
        return cursor.rowcount

    def mark_settled(
        self, expense_id: str, settled_at: datetime, owner_id: str | None = None
    ) -> int:
        """Mark an expense settled. Returns rows affected."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE expenses SET settled = 1, settled_at = ?
            WHERE id = ? AND (? IS NULL OR owner_id = ?)
            """,
            (_to_utc_iso(settled_at), expense_id, owner_id, owner_id),
        )
        self.conn.commit()
        return cursor.rowcount

    def delete_expense(self, expense_id: str, owner_id: str | None = None) -> int:
        """Delete an expense. Returns rows affected."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM expenses WHERE id = ? AND (? IS NULL OR owner_id = ?)",
            (expense_id, owner_id, owner_id),
        )
        self.conn.commit()
        return cursor.rowcount


class SqliteGateway:
    """Ledger gateway backed by a local SQLite database.

    The methods are async to satisfy ``LedgerGateway`` but each runs its
    ``sqlite3`` call to completion without yielding to the event loop, so a
    store timeout never interrupts it. Timeouts only bound the Supabase
    backend.
    """

    def __init__(self, database: Database, owner_id: str | None = None):
        """Initialize the gateway."""
        self.db = database
        self.owner_id = owner_id

    async def aclose(self):
        """Close the underlying database."""
        self.db.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def list_expenses(self, owner_id: str | None = None) -> list[Expense]:
        """List the owner's expenses, newest first."""
        owner = owner_id or self.owner_id
        try:
            expenses = self.db.list_expenses(owner)
        except sqlite3.Error as e:
            raise TransportFailure(f"Could not read expenses: {e}") from e
        logger.debug(f"Listed {len(expenses)} expenses for owner {owner}")
        return expenses

    async def create_expense(self, draft: Expense) -> Expense:
        """Persist a new expense, stamping the gateway's owner on it."""
        expense = draft
        if self.owner_id and draft.owner_id != self.owner_id:
            expense = draft.model_copy(update={"owner_id": self.owner_id})
        try:
            self.db.insert_expense(expense)
            stored = self.db.get_expense(expense.id, self.owner_id)
        except sqlite3.Error as e:
            raise TransportFailure(f"Could not create expense: {e}") from e
        if stored is None:
            raise NotFound(expense.id, f"Expense {expense.id} vanished after insert")
        return stored

    async def update_expense(self, expense: Expense) -> Expense:
        """Replace an expense's stored fields, keeping it under this gateway's owner."""
        if self.owner_id and expense.owner_id != self.owner_id:
            expense = expense.model_copy(update={"owner_id": self.owner_id})
        try:
            updated = self.db.update_expense(expense, self.owner_id)
            stored = self.db.get_expense(expense.id, self.owner_id) if updated else None
        except sqlite3.Error as e:
            raise TransportFailure(f"Could not update expense: {e}") from e
        if stored is None:
            raise NotFound(expense.id)
        return stored

    async def delete_expense(self, expense_id: str) -> None:
        """Delete an expense by id."""
        try:
            deleted = self.db.delete_expense(expense_id, self.owner_id)
        except sqlite3.Error as e:
            raise TransportFailure(f"Could not delete expense: {e}") from e
        if not deleted:
            raise NotFound(expense_id)

    async def settle_expense(self, expense_id: str) -> Expense:
        """Mark an expense settled now."""
        try:
            updated = self.db.mark_settled(expense_id, utc_now(), self.owner_id)
            stored = self.db.get_expense(expense_id, self.owner_id) if updated else None
        except sqlite3.Error as e:
            raise TransportFailure(f"Could not settle expense: {e}") from e
        if stored is None:
            raise NotFound(expense_id)
        return stored
