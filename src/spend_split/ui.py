"""Rich rendering for the ledger: expense tables and the balance summary."""

from rich.console import Console
from rich.table import Table

from .models import DisplayNames, Expense, LedgerSummary
from .money import Money

console = Console()


def format_money(amount: Money, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    Amounts are rounded to cents for display only.
    """
    cents = abs(amount).quantize_cents()
    if amount.is_negative:
        if use_color:
            return f"($[red]{cents:,.2f}[/red])"
        return f"(${cents:,.2f})"
    if use_color:
        return f" [green]${cents:,.2f}[/green] "
    return f" ${cents:,.2f} "


def short_id(expense_id: str) -> str:
    return expense_id[:8]


def display_expenses(
    expenses: list[Expense], names: DisplayNames, title: str = "Expenses"
):
    """Display expenses in a table, in the order given."""
    if not expenses:
        console.print("[yellow]No expenses.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=10)
    table.add_column("Date", width=10)
    table.add_column("Title", style="cyan", width=30)
    table.add_column("Paid by", width=10)
    table.add_column("Amount", justify="right", width=12)
    table.add_column("Split", style="yellow")
    table.add_column("Owes", justify="right", width=22)
    table.add_column("Status", justify="center", width=9)

    for expense in expenses:
        title_text = expense.title or expense.description or ""
        if len(title_text) > 30:
            title_text = title_text[:27] + "..."

        if expense.debtor is None:
            owes = "[dim]-[/dim]"
        else:
            owes = (
                f"{names.name_for(expense.debtor)} "
                f"{format_money(expense.debt_amount, use_color=False).strip()}"
            )

        table.add_row(
            short_id(expense.id),
            expense.occurred_at.date().isoformat(),
            title_text,
            names.name_for(expense.payer),
            format_money(expense.amount),
            expense.policy.label,
            owes,
            "[green]settled[/green]" if expense.settled else "[bold]open[/bold]",
        )

    console.print(table)


def display_summary(summary: LedgerSummary, names: DisplayNames):
    """Display outstanding totals and who owes whom."""
    console.print("\n[bold]Outstanding balance[/bold] (unsettled expenses only)")
    console.print(
        f"  {names.primary_name} spent:   {format_money(summary.primary_total)}"
    )
    console.print(
        f"  {names.secondary_name} spent: {format_money(summary.secondary_total)}"
    )

    if summary.who_owes is None:
        console.print("\n[bold green]✓ All square, nobody owes anything.[/bold green]\n")
        return

    debtor = names.name_for(summary.who_owes)
    creditor = names.name_for(summary.who_owes.other())
    console.print(
        f"\n  [bold]{debtor}[/bold] owes [bold]{creditor}[/bold] "
        f"{format_money(summary.amount_owed).strip()}\n"
    )
