"""Command-line interface for schoolloan.

Built with Typer for commands and Rich for output.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .db import get_db
from .errors import LoanError, StoreUnavailableError
from .items import ItemCreate, ItemManager
from .log import configure_logging
from .loans import LoanManager, LoanResponse, Punishment, ReturnCondition

# Create the main app
app = typer.Typer(
    name="schoolloan",
    help="Lend school assets: requests, approvals, returns and late loans.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
item_app = typer.Typer(help="Manage lendable items.")
app.add_typer(item_app, name="item")

loan_app = typer.Typer(help="Request, approve and return loans.")
app.add_typer(loan_app, name="loan")

# Rich console for pretty output
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level"),
) -> None:
    """Lend school assets: requests, approvals, returns and late loans."""
    configure_logging(level=log_level)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def fail(error: Exception) -> None:
    """Print a domain or store error and exit with status 1."""
    if isinstance(error, LoanError):
        print_error(f"{error.code.value}: {error.message}")
    else:
        print_error(str(error))
    raise typer.Exit(1)


def _fmt(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def format_loan_table(loans: list[LoanResponse], title: str = "Loans") -> Table:
    """Create a rich table for displaying loans."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Item", style="cyan", max_width=30)
    table.add_column("Borrower", style="green")
    table.add_column("Status", style="yellow")
    table.add_column("Due")
    table.add_column("Late", justify="center")

    for loan in loans:
        table.add_row(
            loan.id[:8],
            loan.item_name or loan.item_id,
            loan.borrower_id,
            loan.status.value,
            _fmt(loan.due_at),
            "[bold red]LATE[/bold red]" if loan.is_late else "",
        )

    return table


# ============================================================================
# Item Commands
# ============================================================================


@item_app.command("add")
def item_add(
    code: str = typer.Option(..., "--code", help="Inventory code, unique per item"),
    name: str = typer.Option(..., "--name", "-n", help="Item name"),
    stock: int = typer.Option(1, "--stock", "-s", min=0, help="Units on the shelf"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Storage location"),
    condition: str = typer.Option("GOOD", "--condition", help="Physical condition of the item"),
) -> None:
    """Register a new item."""
    manager = ItemManager(get_db())
    try:
        item = manager.create_item(
            ItemCreate(
                code=code,
                name=name,
                item_condition=condition,
                stock=stock,
                category=category,
                location=location,
            )
        )
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success(f"Added: {item.name} (stock {item.stock})")
    console.print(f"  ID: {item.id}")


@item_app.command("list")
def item_list(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
    available: bool = typer.Option(False, "--available", "-a", help="Only items in stock"),
) -> None:
    """List items."""
    items = ItemManager(get_db()).list_items(category=category, available_only=available)
    if not items:
        console.print("[dim]No items found.[/dim]")
        return

    table = Table(title="Items", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Code")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Condition")
    table.add_column("Stock", justify="right")
    for item in items:
        table.add_row(
            item.id,
            item.code,
            item.name,
            item.category or "-",
            item.item_condition,
            str(item.stock),
        )
    console.print(table)


@item_app.command("stock")
def item_stock(
    item_id: str = typer.Argument(..., help="Item ID"),
    stock: int = typer.Argument(..., min=0, help="Counted units on the shelf"),
) -> None:
    """Correct an item's stock after a stocktake."""
    try:
        item = ItemManager(get_db()).set_stock(item_id, stock)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success(f"{item.name}: stock set to {item.stock}")


# ============================================================================
# Loan Commands
# ============================================================================


@loan_app.command("request")
def loan_request(
    borrower: str = typer.Option(..., "--borrower", "-b", help="Borrower ID"),
    item_id: str = typer.Option(..., "--item", "-i", help="Item ID"),
) -> None:
    """Request to borrow an item."""
    try:
        loan = LoanManager(get_db()).request_loan(borrower, item_id)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success("Loan request submitted, waiting for approval.")
    console.print(f"  Loan ID: {loan.id}")


@loan_app.command("approve")
def loan_approve(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    approver: str = typer.Option(..., "--approver", "-a", help="Staff ID"),
) -> None:
    """Approve a pending loan (due in 24 hours)."""
    try:
        loan = LoanManager(get_db()).approve_loan(loan_id, approver)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success(f"Loan approved. Due: {loan.due_at}")


@loan_app.command("borrow")
def loan_borrow(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    approver: str = typer.Option(..., "--approver", "-a", help="Staff ID"),
) -> None:
    """Record that an approved item was picked up."""
    try:
        LoanManager(get_db()).mark_borrowed(loan_id, approver)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success("Item handed over.")


@loan_app.command("reject")
def loan_reject(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    approver: str = typer.Option(..., "--approver", "-a", help="Staff ID"),
) -> None:
    """Reject a pending loan request."""
    try:
        LoanManager(get_db()).reject_loan(loan_id, approver)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success("Loan request rejected.")


@loan_app.command("request-return")
def loan_request_return(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    borrower: str = typer.Option(..., "--borrower", "-b", help="Borrower ID"),
    note: Optional[str] = typer.Option(None, "--note", help="Note for staff"),
) -> None:
    """Tell staff a borrowed item has been brought back."""
    try:
        LoanManager(get_db()).request_return(loan_id, borrower, note)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)
    print_success("Return requested, waiting for staff confirmation.")


@loan_app.command("return")
def loan_return(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    approver: str = typer.Option(..., "--approver", "-a", help="Staff ID"),
    condition: ReturnCondition = typer.Option(..., "--condition", "-c", help="Item condition"),
    reason: Optional[str] = typer.Option(None, "--reason", "-r", help="Notes on the return"),
) -> None:
    """Confirm a return and record the item's condition."""
    try:
        result = LoanManager(get_db()).confirm_return(loan_id, approver, condition, reason)
    except (LoanError, StoreUnavailableError) as e:
        fail(e)

    if result.punishment == Punishment.NONE:
        print_success(result.message)
    else:
        print_warning(result.message)
    console.print(f"  Condition: {result.condition.value}")
    console.print(f"  Stock restored: {'yes' if result.stock_incremented else 'no'}")
    console.print(f"  Punishment: {result.punishment.value}")


@loan_app.command("pending")
def loan_pending() -> None:
    """List loan requests waiting for approval."""
    console.print(format_loan_table(LoanManager(get_db()).list_pending(), "Pending Loans"))


@loan_app.command("active")
def loan_active() -> None:
    """List approved and borrowed loans."""
    console.print(format_loan_table(LoanManager(get_db()).list_active(), "Active Loans"))


@loan_app.command("late")
def loan_late() -> None:
    """List borrowed loans that are past due."""
    loans = LoanManager(get_db()).list_late()
    if not loans:
        console.print("[green]No late loans.[/green]")
        return
    console.print(format_loan_table(loans, "Late Loans"))


@loan_app.command("all")
def loan_all() -> None:
    """List every loan."""
    console.print(format_loan_table(LoanManager(get_db()).list_all(), "All Loans"))


@loan_app.command("mine")
def loan_mine(
    borrower: str = typer.Option(..., "--borrower", "-b", help="Borrower ID"),
) -> None:
    """Show a borrower's loans and eligibility."""
    summary = LoanManager(get_db()).list_for_borrower(borrower)

    if summary.late_loan:
        late = summary.late_loan
        print_warning(
            f"{late.item_name or late.item_id} is {late.hours_late} hour(s) late. "
            "Return it before requesting a new loan."
        )
    elif summary.has_active_loan:
        console.print("[yellow]You have an active loan.[/yellow]")
    else:
        console.print("[green]You can request a loan.[/green]")

    if summary.loans:
        console.print(format_loan_table(summary.loans, f"Loans for {borrower}"))


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"schoolloan version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


if __name__ == "__main__":
    app()
