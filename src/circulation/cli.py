"""Command-line interface for circulation.

Built with Typer for commands and Rich for output.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import ItemResponse, LoanResponse, UserResponse, UserRole
from .errors import CirculationError
from .lending import LendingPolicy, LendingService
from .logging_config import setup_logging
from .users import UserService

# Create the main app
app = typer.Typer(
    name="circulation",
    help="Lend catalog items to users and track returns and late fees.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
item_app = typer.Typer(help="Manage catalog items.")
app.add_typer(item_app, name="item")

user_app = typer.Typer(help="Manage users.")
app.add_typer(user_app, name="user")

loans_app = typer.Typer(help="Loan history and overdue reports.")
app.add_typer(loans_app, name="loans")

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def fail(error: CirculationError) -> None:
    """Report a lending failure and exit non-zero."""
    print_error(f"{error.message} [dim]({error.status_code})[/dim]")
    raise typer.Exit(1)


def lending_service() -> LendingService:
    config = get_config()
    db = get_db(config.db_path, timeout=config.db_timeout)
    return LendingService(db, policy=LendingPolicy.from_config(config))


def user_service() -> UserService:
    config = get_config()
    return UserService(get_db(config.db_path, timeout=config.db_timeout))


def format_item_table(items: list, title: str = "Items") -> Table:
    """Create a rich table for displaying items."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Status")
    table.add_column("Due", justify="center")

    for record in items:
        item = ItemResponse.model_validate(record)
        status = "[green]available[/green]" if item.available else "[yellow]on loan[/yellow]"
        due = item.due_date.isoformat() if item.due_date else "-"
        table.add_row(str(item.id), item.title, item.author, status, due)

    return table


def format_loan_table(loans: list, title: str = "Loans") -> Table:
    """Create a rich table for displaying loans."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Loan", style="dim")
    table.add_column("Item")
    table.add_column("User")
    table.add_column("Borrowed")
    table.add_column("Due")
    table.add_column("Returned")
    table.add_column("Fee", justify="right")

    for record in loans:
        loan = LoanResponse.model_validate(record)
        returned = loan.return_date.isoformat() if loan.return_date else "[yellow]open[/yellow]"
        table.add_row(
            str(loan.id),
            str(loan.item_id),
            str(loan.user_id),
            loan.borrow_date.isoformat(),
            loan.due_date.isoformat(),
            returned,
            f"{loan.late_fee:.2f}",
        )

    return table


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    config = get_config()
    errors = config.validate()
    for error in errors:
        print_error(error)
    if errors:
        raise typer.Exit(1)
    setup_logging(config.log_level, config.log_file)


@app.command()
def init() -> None:
    """Create the database tables."""
    config = get_config()
    get_db(config.db_path, timeout=config.db_timeout)
    print_success(f"Database ready at {config.db_path}")


# ============================================================================
# Item Commands
# ============================================================================


@item_app.command("add")
def item_add(
    title: str = typer.Argument(..., help="Item title"),
    author: str = typer.Argument(..., help="Item author"),
) -> None:
    """Add an item to the catalog."""
    try:
        item = lending_service().add_item({"title": title, "author": author})
    except CirculationError as e:
        fail(e)
    print_success(f"Added: {item.title} ({item.id})")


@item_app.command("show")
def item_show(item_id: str = typer.Argument(..., help="Item ID")) -> None:
    """Show one item."""
    try:
        item = lending_service().get_item(item_id)
    except CirculationError as e:
        fail(e)
    console.print(format_item_table([item], title=item.title))


@item_app.command("list")
def item_list() -> None:
    """List all items."""
    items = lending_service().list_items()
    if not items:
        console.print("[dim]No items found.[/dim]")
        return
    console.print(format_item_table(items, title="All Items"))


@item_app.command("update")
def item_update(
    item_id: str = typer.Argument(..., help="Item ID"),
    title: str = typer.Option(..., "--title", "-t", help="New title"),
    author: str = typer.Option(..., "--author", "-a", help="New author"),
) -> None:
    """Replace an item's title and author."""
    try:
        item = lending_service().update_item(item_id, {"title": title, "author": author})
    except CirculationError as e:
        fail(e)
    print_success(f"Updated: {item.title}")


@item_app.command("delete")
def item_delete(item_id: str = typer.Argument(..., help="Item ID")) -> None:
    """Delete an item. Its loan history is kept."""
    try:
        lending_service().delete_item(item_id)
    except CirculationError as e:
        fail(e)
    print_success(f"Deleted item {item_id}")


@item_app.command("search")
def item_search(
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Title fragment"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author fragment"),
    available: Optional[bool] = typer.Option(
        None, "--available/--unavailable", help="Filter by availability"
    ),
) -> None:
    """Search items by title, author and availability."""
    items = lending_service().search_items(title=title, author=author, available=available)
    if not items:
        console.print("[dim]No items found.[/dim]")
        return
    console.print(format_item_table(items, title="Search Results"))


# ============================================================================
# User Commands
# ============================================================================


@user_app.command("register")
def user_register(
    name: str = typer.Argument(..., help="Full name"),
    email: str = typer.Argument(..., help="Email address"),
    role: UserRole = typer.Option(UserRole.MEMBER, "--role", "-r", help="User role"),
) -> None:
    """Register a new user."""
    try:
        user = user_service().register_user({"name": name, "email": email, "role": role})
    except CirculationError as e:
        fail(e)
    print_success(f"Registered {user.name} ({user.id})")


@user_app.command("show")
def user_show(user_id: str = typer.Argument(..., help="User ID")) -> None:
    """Show a user and their open loan count."""
    try:
        user = UserResponse.model_validate(user_service().get_user(user_id))
        open_loans = lending_service().count_open_loans(user.id)
    except CirculationError as e:
        fail(e)
    console.print(f"[bold]{user.name}[/bold] <{user.email}> [dim]{user.role.value}[/dim]")
    console.print(f"Open loans: {open_loans}")


@user_app.command("update")
def user_update(
    user_id: str = typer.Argument(..., help="User ID"),
    name: str = typer.Option(..., "--name", "-n", help="Full name"),
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    role: Optional[UserRole] = typer.Option(
        None, "--role", "-r", help="User role (unchanged if omitted)"
    ),
) -> None:
    """Replace a user's name, email and role."""
    service = user_service()
    try:
        if role is None:
            role = service.get_user(user_id).role
        user = service.update_user(user_id, {"name": name, "email": email, "role": role})
    except CirculationError as e:
        fail(e)
    print_success(f"Updated {user.name}")


# ============================================================================
# Lending Commands
# ============================================================================


@app.command()
def borrow(
    item_id: str = typer.Argument(..., help="Item to borrow"),
    user_id: str = typer.Argument(..., help="Borrowing user"),
) -> None:
    """Lend an item to a user."""
    try:
        item = lending_service().borrow_item(item_id, user_id)
    except CirculationError as e:
        fail(e)
    print_success(f"{item.title} borrowed, due {item.due_date}")


@app.command("return")
def return_item(item_id: str = typer.Argument(..., help="Item to return")) -> None:
    """Return a borrowed item and settle its late fee."""
    service = lending_service()
    try:
        item = service.return_item(item_id)
    except CirculationError as e:
        fail(e)
    loan = service.get_loan_history_for_item(item.id)[0]
    print_success(f"{item.title} returned")
    if loan.late_fee > 0:
        console.print(f"[bold yellow]Late fee:[/bold yellow] {loan.late_fee:.2f}")


@loans_app.command("history")
def loans_history(
    item_id: Optional[str] = typer.Option(None, "--item", "-i", help="Item ID"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User ID"),
) -> None:
    """Show the loan history of an item or a user."""
    if bool(item_id) == bool(user_id):
        print_error("Pass exactly one of --item or --user")
        raise typer.Exit(1)

    service = lending_service()
    try:
        if item_id:
            loans = service.get_loan_history_for_item(item_id)
        else:
            loans = service.get_loan_history_for_user(user_id)
    except CirculationError as e:
        fail(e)

    if not loans:
        console.print("[dim]No loans found[/dim]")
        return
    console.print(format_loan_table(loans, title="Loan History"))


@loans_app.command("overdue")
def loans_overdue() -> None:
    """List open loans past their due date."""
    overdue = lending_service().list_overdue_loans()
    if not overdue:
        console.print("[green]No overdue loans[/green]")
        return

    table = Table(title="Overdue Loans", show_header=True, header_style="bold magenta")
    table.add_column("Item")
    table.add_column("User")
    table.add_column("Due")
    table.add_column("Days", justify="right")
    table.add_column("Fee", justify="right")
    for entry in overdue:
        table.add_row(
            str(entry.item_id),
            str(entry.user_id),
            entry.due_date.isoformat(),
            f"[bold red]{entry.days_overdue}[/bold red]",
            f"{entry.accrued_fee:.2f}",
        )
    console.print(table)


if __name__ == "__main__":
    app()
