"""End-to-end tests for the CLI against a temporary SQLite ledger."""

import pytest
from typer.testing import CliRunner

from spend_split.cli import app
from spend_split.db import Database
from spend_split.money import Money
from spend_split.ui import console

runner = CliRunner()


@pytest.fixture
def db_path(monkeypatch, tmp_path):
    """Point the CLI at a fresh database."""
    monkeypatch.chdir(tmp_path)
    # Wide enough that tables never wrap cell text
    monkeypatch.setattr(console, "width", 200)
    monkeypatch.delenv("SPEND_SPLIT_GATEWAY_BACKEND", raising=False)
    monkeypatch.delenv("SPEND_SPLIT_OWNER_ID", raising=False)
    monkeypatch.setenv("SPEND_SPLIT_PRIMARY_NAME", "Alex")
    monkeypatch.setenv("SPEND_SPLIT_SECONDARY_NAME", "Sam")
    path = tmp_path / "cli.db"
    monkeypatch.setenv("SPEND_SPLIT_DATABASE_PATH", str(path))
    return path


def stored(path):
    """Read the ledger straight from the database."""
    database = Database(path)
    try:
        return database.list_expenses()
    finally:
        database.close()


def test_add_and_summary(db_path):
    """Adding an expense reports who owes whom."""
    result = runner.invoke(app, ["add", "100", "--paid-by", "primary", "-t", "Groceries"])

    assert result.exit_code == 0, result.output
    assert "Added expense" in result.output
    assert "Sam owes Alex $50.00" in result.output

    (expense,) = stored(db_path)
    assert expense.title == "Groceries"
    assert expense.debt_amount == Money("50")

    summary = runner.invoke(app, ["summary"])
    assert summary.exit_code == 0
    assert "Sam owes Alex $50.00" in summary.output


def test_list_shows_expenses(db_path):
    """list renders the ledger as a table."""
    runner.invoke(app, ["add", "12.34", "-p", "secondary", "-t", "Coffee"])

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "Coffee" in result.output
    assert "12.34" in result.output


def test_list_filters_before_limiting(db_path):
    """A limit applies to the filtered rows, not the whole ledger."""
    runner.invoke(app, ["add", "5", "-p", "secondary", "-t", "Older"])
    runner.invoke(app, ["add", "7", "-p", "primary", "-t", "Newer"])

    result = runner.invoke(app, ["list", "--paid-by", "secondary", "--limit", "1"])

    assert result.exit_code == 0, result.output
    assert "Older" in result.output
    assert "Newer" not in result.output


def test_list_empty(db_path):
    """An empty ledger says so."""
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "No expenses" in result.output


def test_settle_all(db_path):
    """settle-all clears the outstanding balance."""
    runner.invoke(app, ["add", "40", "-p", "primary"])
    runner.invoke(app, ["add", "10", "-p", "secondary", "-s", "partner_full"])

    result = runner.invoke(app, ["settle-all", "--yes"])

    assert result.exit_code == 0, result.output
    assert "Settled 2 expenses" in result.output
    assert "All square" in result.output
    assert all(e.settled for e in stored(db_path))


def test_settle_by_prefix(db_path):
    """settle accepts a unique id prefix."""
    runner.invoke(app, ["add", "30"])
    (expense,) = stored(db_path)

    result = runner.invoke(app, ["settle", expense.id[:8]])

    assert result.exit_code == 0, result.output
    assert stored(db_path)[0].settled is True


def test_edit_re_resolves_debt(db_path):
    """Changing the amount recomputes the stored debt."""
    runner.invoke(app, ["add", "100"])
    (expense,) = stored(db_path)

    result = runner.invoke(app, ["edit", expense.id[:8], "--amount", "60"])

    assert result.exit_code == 0, result.output
    (edited,) = stored(db_path)
    assert edited.amount == Money("60")
    assert edited.debt_amount == Money("30")


def test_delete_and_delete_all(db_path):
    """delete removes one expense, delete-all removes the rest."""
    for amount in ("1", "2", "3"):
        runner.invoke(app, ["add", amount])
    first = stored(db_path)[0]

    result = runner.invoke(app, ["delete", first.id])
    assert result.exit_code == 0, result.output
    assert len(stored(db_path)) == 2

    result = runner.invoke(app, ["delete-all", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Deleted 2 expenses" in result.output
    assert stored(db_path) == []


def test_invalid_amount(db_path):
    """A non-numeric amount is a usage error."""
    result = runner.invoke(app, ["add", "lots"])

    assert result.exit_code == 2
    assert stored(db_path) == []


def test_unknown_id_fails(db_path):
    """Settling an unknown id exits with an error."""
    result = runner.invoke(app, ["settle", "deadbeef"])

    assert result.exit_code == 1
    assert "not found" in result.output
