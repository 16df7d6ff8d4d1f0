"""CLI for SpendSplit using Typer."""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import typer

from .config import Settings, load_settings
from .gateway import build_gateway
from .models import Expense, Party, SplitPolicy, resolve_debt
from .money import Money
from .store import ExpenseStore
from .ui import console, display_expenses, display_summary, format_money, short_id

app = typer.Typer(
    name="spend-split",
    help="Track shared expenses between two people and settle up",
)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def parse_amount(value: str) -> Money:
    """Parse a CLI amount into Money."""
    try:
        return Money(value)
    except (TypeError, ValueError) as e:
        raise typer.BadParameter(f"'{value}' is not a valid amount") from e


async def _session(
    settings: Settings, action: Callable[[ExpenseStore], Awaitable[Any]]
) -> tuple[ExpenseStore, Any]:
    """Open the gateway, load the ledger, then run ``action`` against it."""
    gateway = build_gateway(settings)
    async with gateway:
        store = ExpenseStore(
            gateway,
            owner_id=settings.owner_id,
            display_names=settings.display_names,
            recent_limit=settings.recent_limit,
        )
        await store.load_expenses(timeout=settings.request_timeout)
        if store.error_message:
            return store, None
        result = await action(store)
        return store, result


def run_with_store(
    action: Callable[[ExpenseStore], Awaitable[Any]], verbose: bool
) -> tuple[ExpenseStore, Any]:
    """
    Run a store action, exiting with status 1 if it recorded an error.

    Returns:
        The store (for reading state) and the action's result
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        store, result = asyncio.run(_session(settings, action))
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)

    if store.error_message:
        console.print(f"\n[bold red]Error:[/bold red] {store.error_message}")
        sys.exit(1)

    return store, result


def _resolve_id(store: ExpenseStore, expense_id: str) -> str:
    """Expand a short id prefix to a full expense id."""
    matches = [e.id for e in store.expenses if e.id.startswith(expense_id)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        # Let the gateway decide; the ledger may not hold it locally
        return expense_id
    raise typer.BadParameter(f"'{expense_id}' matches {len(matches)} expenses")


@app.command()
def add(
    amount: str = typer.Argument(..., help="Amount paid, e.g. 42.50"),
    paid_by: Party = typer.Option(Party.PRIMARY, "--paid-by", "-p", help="Who paid"),
    split: SplitPolicy = typer.Option(
        SplitPolicy.EQUAL, "--split", "-s", help="How the expense is shared"
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Short title"),
    description: str | None = typer.Option(
        None, "--description", "-d", help="Longer description"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a new shared expense."""
    money = parse_amount(amount)

    async def action(store: ExpenseStore):
        return await store.add_expense(
            money, paid_by, split, title=title, description=description
        )

    store, expense = run_with_store(action, verbose)

    console.print(
        f"\n[bold green]✓ Added expense {short_id(expense.id)}[/bold green] "
        f"({format_money(expense.amount).strip()} paid by "
        f"{store.display_name(expense.payer)}, {expense.policy.label.lower()})"
    )
    display_summary(store.summary, store.display_names)


@app.command(name="list")
def list_expenses(
    limit: int | None = typer.Option(
        None, "--limit", "-n", help="Show at most this many (default: recent limit)"
    ),
    unsettled: bool = typer.Option(
        False, "--unsettled", "-u", help="Only show unsettled expenses"
    ),
    paid_by: Party | None = typer.Option(
        None, "--paid-by", "-p", help="Only show expenses paid by this party"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List expenses, newest first."""

    async def action(store: ExpenseStore):
        return None

    store, _ = run_with_store(action, verbose)

    expenses = store.unsettled_expenses() if unsettled else store.expenses
    if paid_by is not None:
        expenses = [e for e in expenses if e.payer == paid_by]
    if limit is None:
        limit = store.recent_limit

    display_expenses(expenses[: max(limit, 0)], store.display_names)


@app.command()
def summary(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show who owes whom over unsettled expenses, plus all-time totals."""

    async def action(store: ExpenseStore):
        return None

    store, _ = run_with_store(action, verbose)
    names = store.display_names

    display_summary(store.summary, names)
    console.print("[bold]All-time spending[/bold] (including settled)")
    for party in Party:
        console.print(
            f"  {names.name_for(party)}: {format_money(store.total_spending(party))}"
        )
    console.print()


@app.command()
def settle(
    expense_id: str = typer.Argument(..., help="Expense id (or unique prefix)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Settle a single expense."""

    async def action(store: ExpenseStore):
        return await store.settle_expense(_resolve_id(store, expense_id))

    store, expense = run_with_store(action, verbose)

    console.print(f"\n[bold green]✓ Settled expense {short_id(expense.id)}[/bold green]")
    display_summary(store.summary, store.display_names)


@app.command(name="settle-all")
def settle_all(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Settle every unsettled expense."""
    if not yes and not typer.confirm("Mark all unsettled expenses as settled?"):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    async def action(store: ExpenseStore):
        return await store.settle_all()

    store, count = run_with_store(action, verbose)

    if count == 0:
        console.print("\n[yellow]Nothing to settle.[/yellow]")
    else:
        console.print(f"\n[bold green]✓ Settled {count} expenses[/bold green]")
    display_summary(store.summary, store.display_names)


@app.command()
def edit(
    expense_id: str = typer.Argument(..., help="Expense id (or unique prefix)"),
    amount: str | None = typer.Option(None, "--amount", "-a", help="New amount"),
    paid_by: Party | None = typer.Option(None, "--paid-by", "-p", help="New payer"),
    split: SplitPolicy | None = typer.Option(None, "--split", "-s", help="New split"),
    title: str | None = typer.Option(None, "--title", "-t", help="New title"),
    description: str | None = typer.Option(
        None, "--description", "-d", help="New description"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Edit an expense. Changing amount, payer or split re-resolves its debt."""
    new_amount = parse_amount(amount) if amount is not None else None

    async def action(store: ExpenseStore):
        current = store.get_expense(_resolve_id(store, expense_id))
        if current is None:
            raise typer.BadParameter(f"No loaded expense matches '{expense_id}'")

        changes: dict[str, Any] = {}
        if new_amount is not None:
            changes["amount"] = new_amount
        if paid_by is not None:
            changes["payer"] = paid_by
        if split is not None:
            changes["policy"] = split
        if title is not None:
            changes["title"] = title
        if description is not None:
            changes["description"] = description

        # The store stores what it is given, so the replacement carries its debt
        if {"amount", "payer", "policy"} & changes.keys():
            debt = resolve_debt(
                changes.get("amount", current.amount),
                changes.get("payer", current.payer),
                changes.get("policy", current.policy),
            )
            changes["debt_amount"] = debt.debt_amount
            changes["debtor"] = debt.debtor

        replacement = Expense.model_validate({**current.model_dump(), **changes})
        return await store.update_expense(replacement)

    store, expense = run_with_store(action, verbose)

    console.print(f"\n[bold green]✓ Updated expense {short_id(expense.id)}[/bold green]")
    display_summary(store.summary, store.display_names)


@app.command()
def delete(
    expense_id: str = typer.Argument(..., help="Expense id (or unique prefix)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a single expense."""

    async def action(store: ExpenseStore):
        full_id = _resolve_id(store, expense_id)
        await store.delete_expense(full_id)
        return full_id

    store, deleted_id = run_with_store(action, verbose)

    console.print(f"\n[bold green]✓ Deleted expense {short_id(deleted_id)}[/bold green]")
    display_summary(store.summary, store.display_names)


@app.command(name="delete-all")
def delete_all(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete every expense in the ledger."""
    if not yes and not typer.confirm("Delete ALL expenses? This cannot be undone"):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    async def action(store: ExpenseStore):
        return await store.delete_all_expenses()

    _, count = run_with_store(action, verbose)

    console.print(f"\n[bold green]✓ Deleted {count} expenses[/bold green]")


if __name__ == "__main__":
    app()
