import typer
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from penny.database.connection import DatabaseConfig, DatabaseManager
from penny.domain.models import Expense
from penny.logging_setup import configure_logging
from penny.repositories.sqlite_expense_repository import SQLiteExpenseRepository
from penny.services.expense_service import ExpenseService
from penny.services.validation import ValidationError

app = typer.Typer(
    name="penny",
    help="Track, categorize and analyze your personal expenses",
    add_completion=False,
)

console = Console()

# How many row errors to print after an import
MAX_ERRORS_SHOWN = 5


class State:
    verbose: bool = False
    db_path: Path = Path("data/expenses.db")
    service: Optional[ExpenseService] = None


state = State()


def get_service() -> ExpenseService:
    """Build the service on first use so `--help` never touches the database"""
    if state.service is None:
        db_manager = DatabaseManager(DatabaseConfig(state.db_path))
        db_manager.initialize()
        state.service = ExpenseService(SQLiteExpenseRepository(db_manager))
    return state.service


def fail(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {e}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def expense_table(expenses, title: Optional[str] = None) -> Table:
    table = Table(title=title, show_header=True, padding=(0, 1))
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Date", style="cyan", width=12)
    table.add_column("Vendor", style="white", max_width=30)
    table.add_column("Category", style="magenta")
    table.add_column("Amount", justify="right")
    table.add_column("", justify="center")

    for expense in expenses:
        vendor = expense.vendor_name[:27] + "..." if len(expense.vendor_name) > 30 else expense.vendor_name
        table.add_row(
            str(expense.id),
            str(expense.date),
            vendor,
            expense.category.value,
            f"${expense.amount:,.2f}",
            "[bold red]⚠[/bold red]" if expense.is_anomaly else "",
        )
    return table


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    db: Path = typer.Option(
        Path("data/expenses.db"),
        "--db",
        help="Path to the SQLite database",
        envvar="PENNY_DB_PATH",
    ),
):
    """
    Penny - Import, categorize and analyze your expenses.
    """
    state.verbose = verbose
    state.db_path = db

    configure_logging(
        level="DEBUG" if verbose else None,
        handler=RichHandler(console=Console(stderr=True), show_path=False),
        fmt="%(message)s",
    )


@app.command(name="add")
def add_expense(
    vendor: str = typer.Argument(..., help="Vendor name, e.g. 'Swiggy'"),
    amount: str = typer.Argument(..., help="Amount, e.g. 350.00"),
    date_value: str = typer.Option(
        ...,
        "--date", "-d",
        help="Date (YYYY-MM-DD)",
    ),
    description: Optional[str] = typer.Option(
        None,
        "--description",
        help="Optional note",
    ),
):
    """
    Add a single expense. Category and anomaly flag are derived automatically.

    Examples:
        penny add Swiggy 350 --date 2024-01-10
        penny add "HDFC Insurance" 12000 -d 2024-02-01 --description "Annual premium"
    """
    try:
        expense = get_service().create_expense(
            date=date_value,
            amount=amount,
            vendor_name=vendor,
            description=description,
        )
    except ValidationError as e:
        console.print(f"[bold red]Invalid {e.field}:[/bold red] {e.message}")
        raise typer.Exit(code=1)
    except Exception as e:
        fail(e)

    console.print(
        f"[bold green]✓ Added expense #{expense.id}[/bold green] "
        f"{expense.vendor_name} → [magenta]{expense.category.value}[/magenta] "
        f"${expense.amount:,.2f}"
    )
    if expense.is_anomaly:
        console.print("[bold red]⚠ This expense is unusually large for its category[/bold red]")


@app.command(name="list")
def list_expenses(
    limit: int = typer.Option(
        25,
        "--limit", "-n",
        help="Maximum number of expenses to show",
        min=1,
    ),
):
    """
    List expenses, newest first.
    """
    try:
        expenses = get_service().list_expenses()
    except Exception as e:
        fail(e)

    if not expenses:
        console.print(Panel(
            "[yellow]No expenses recorded yet[/yellow]",
            title="Empty",
            border_style="yellow"
        ))
        return

    console.print(expense_table(expenses[:limit], title="Expenses"))
    if len(expenses) > limit:
        console.print(f"\n[dim]Showing {limit} of {len(expenses)} expenses[/dim]")


@app.command(name="show")
def show_expense(expense_id: int = typer.Argument(..., help="Expense ID")):
    """
    Show a single expense.
    """
    try:
        expense: Expense = get_service().get_expense(expense_id)
    except Exception as e:
        fail(e)

    console.print(Panel(
        f"[bold]Vendor:[/bold] {expense.vendor_name}\n"
        f"[bold]Date:[/bold] {expense.date}\n"
        f"[bold]Amount:[/bold] ${expense.amount:,.2f}\n"
        f"[bold]Category:[/bold] {expense.category.value}\n"
        f"[bold]Description:[/bold] {expense.description or '-'}\n"
        f"[bold]Anomaly:[/bold] {'YES' if expense.is_anomaly else 'no'}\n"
        f"[dim]Created {expense.created_at:%Y-%m-%d %H:%M}[/dim]",
        title=f"[bold]Expense #{expense.id}[/bold]",
        border_style="red" if expense.is_anomaly else "cyan",
    ))


@app.command(name="delete")
def delete_expense(expense_id: int = typer.Argument(..., help="Expense ID")):
    """
    Delete an expense.
    """
    try:
        get_service().delete_expense(expense_id)
    except Exception as e:
        fail(e)

    console.print(f"[green]✓[/green] Deleted expense #{expense_id}")


@app.command(name="import")
def import_csv(
    filepath: Path = typer.Argument(
        ...,
        help="CSV file with header date,amount,vendor_name,description",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
):
    """
    Import expenses from a CSV file.

    Bad rows are reported and skipped; the rest of the file is still imported.

    Examples:
        penny import expenses.csv
    """
    try:
        console.print(Panel.fit(
            f"[bold cyan]Import[/bold cyan]\n"
            f"File: {filepath}\n"
            f"Database: {state.db_path}",
            border_style="cyan"
        ))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Importing expenses...", total=None)
            result = get_service().import_csv(filepath.read_bytes())
            progress.update(task, completed=True)

    except Exception as e:
        fail(e)

    if result.imported:
        console.print(expense_table(result.imported[:5], title="Preview (first 5)"))

    console.print(f"\n[bold green]✓ Added {result.added} expenses[/bold green]")
    anomalies = sum(1 for e in result.imported if e.is_anomaly)
    if anomalies:
        console.print(f"[bold red]⚠ {anomalies} flagged as anomalies[/bold red]")

    if result.failed:
        console.print(f"[yellow]✗ {result.failed} rows failed[/yellow]")
        for error in result.errors[:MAX_ERRORS_SHOWN]:
            console.print(f"  [dim]• {error}[/dim]")
        if result.failed > MAX_ERRORS_SHOWN:
            console.print(f"  [dim]… and {result.failed - MAX_ERRORS_SHOWN} more[/dim]")


@app.command(name="dashboard")
def dashboard():
    """
    Show spending totals, top vendors and anomalies.
    """
    try:
        view = get_service().get_dashboard()
    except Exception as e:
        fail(e)

    if view.expense_count == 0:
        console.print(Panel(
            "[yellow]No expenses recorded yet[/yellow]",
            title="Empty Dashboard",
            border_style="yellow"
        ))
        return

    # ═══════════════════════════════════════════════════════════
    # SUMMARY PANEL
    # ═══════════════════════════════════════════════════════════

    console.print(Panel(
        f"[bold]Expenses:[/bold] {view.expense_count}\n"
        f"[red]💸 Spent:[/red]     ${view.total_spent:>12,.2f}\n"
        f"[bold red]⚠ Anomalies:[/bold red] {view.anomaly_count}",
        title="[bold]Summary[/bold]",
        border_style="cyan",
        padding=(1, 2)
    ))

    # ═══════════════════════════════════════════════════════════
    # SPENDING BY CATEGORY
    # ═══════════════════════════════════════════════════════════

    category_table = Table(title="By Category", show_header=True, box=None, padding=(0, 2))
    category_table.add_column("Category", style="cyan", no_wrap=True)
    category_table.add_column("Amount", justify="right", style="red")
    category_table.add_column("Count", justify="right")
    category_table.add_column("% of Total", justify="right", style="dim")

    for stat in view.category_totals:
        percentage = stat.total / view.total_spent * 100
        category_table.add_row(
            stat.category,
            f"${stat.total:,.2f}",
            str(stat.count),
            f"{percentage:.1f}%"
        )
    console.print(category_table)

    # ═══════════════════════════════════════════════════════════
    # MONTHLY BREAKDOWN
    # ═══════════════════════════════════════════════════════════

    monthly_table = Table(title="By Month", show_header=True, box=None, padding=(0, 2))
    monthly_table.add_column("Month", style="cyan")
    monthly_table.add_column("Breakdown", style="white")
    monthly_table.add_column("Total", justify="right", style="red")

    for month, categories in view.monthly_by_category.items():
        breakdown = ", ".join(f"{name} ${amount:,.0f}" for name, amount in categories.items())
        monthly_table.add_row(month, breakdown, f"${sum(categories.values()):,.2f}")
    console.print(monthly_table)

    # ═══════════════════════════════════════════════════════════
    # TOP VENDORS
    # ═══════════════════════════════════════════════════════════

    vendor_table = Table(title="Top Vendors", show_header=True, box=None, padding=(0, 2))
    vendor_table.add_column("Vendor", style="cyan")
    vendor_table.add_column("Amount", justify="right", style="red")
    vendor_table.add_column("Count", justify="right")

    for stat in view.top_vendors:
        vendor_table.add_row(stat.vendor_name, f"${stat.total:,.2f}", str(stat.count))
    console.print(vendor_table)

    if view.anomalies:
        console.print(expense_table(view.anomalies, title="Anomalies"))


@app.command(name="categories")
def categories():
    """
    Show the vendor token -> category rules, in priority order.
    """
    try:
        rules = get_service().get_category_rules()
    except Exception as e:
        fail(e)

    table = Table(title="Categorization Rules", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Token", style="cyan")
    table.add_column("Category", style="magenta")

    for priority, (token, category) in enumerate(rules.items(), start=1):
        table.add_row(str(priority), token, category)

    console.print(table)


@app.command(name="serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8080, "--port", "-p", help="Port"),
):
    """
    Run the REST API.
    """
    import uvicorn
    from penny.api.app import create_app

    api = create_app(service=get_service())
    console.print(f"[bold cyan]Serving Penny API on http://{host}:{port}/expenses[/bold cyan]")
    uvicorn.run(api, host=host, port=port, log_config=None)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
