"""Tests for the CLI interface."""

import os
import tempfile
from datetime import date
from pathlib import Path
from uuid import uuid4

import pytest
from rich.console import Console
from typer.testing import CliRunner

from circulation.cli import app, format_item_table, format_loan_table
from circulation.config import reset_config
from circulation.db.sqlite import get_db, reset_db
from circulation.lending import LendingService
from circulation.users import UserService


@pytest.fixture(autouse=True)
def setup_test_db():
    """Set up a test database for each test."""
    reset_db()
    reset_config()

    with tempfile.TemporaryDirectory() as tmp:
        db_path = str(Path(tmp) / "circulation.db")
        os.environ["CIRCULATION_DB_PATH"] = db_path

        yield db_path

        # Cleanup
        reset_db()
        reset_config()
        if "CIRCULATION_DB_PATH" in os.environ:
            del os.environ["CIRCULATION_DB_PATH"]


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def service():
    """Service on the same database the CLI uses."""
    return LendingService(get_db())


@pytest.fixture
def item(service):
    return service.add_item({"title": "Solaris", "author": "Stanislaw Lem"})


@pytest.fixture
def member():
    return UserService(get_db()).register_user({"name": "Ada", "email": "ada@example.com"})


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        """Test that help command works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Lend catalog items" in result.stdout

    def test_init(self, runner: CliRunner, setup_test_db):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert Path(setup_test_db).exists()

    def test_invalid_config_rejected(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("CIRCULATION_BORROWING_LIMIT", "0")
        result = runner.invoke(app, ["item", "list"])
        assert result.exit_code == 1
        assert "Borrowing limit" in result.stdout


class TestItemCommands:
    """Tests for item commands."""

    def test_add_item(self, runner: CliRunner, service):
        result = runner.invoke(app, ["item", "add", "Solaris", "Stanislaw Lem"])
        assert result.exit_code == 0
        assert "Added: Solaris" in result.stdout
        assert [i.title for i in service.list_items()] == ["Solaris"]

    def test_add_blank_title(self, runner: CliRunner):
        result = runner.invoke(app, ["item", "add", " ", "Lem"])
        assert result.exit_code == 1
        assert "Invalid title" in result.stdout

    def test_list_empty(self, runner: CliRunner):
        result = runner.invoke(app, ["item", "list"])
        assert result.exit_code == 0
        assert "No items found" in result.stdout

    def test_list_items(self, runner: CliRunner, item):
        result = runner.invoke(app, ["item", "list"])
        assert result.exit_code == 0
        assert "Solaris" in result.stdout

    def test_show_unknown_item(self, runner: CliRunner):
        result = runner.invoke(app, ["item", "show", str(uuid4())])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_show_malformed_id(self, runner: CliRunner):
        result = runner.invoke(app, ["item", "show", "abc"])
        assert result.exit_code == 1
        assert "Invalid item_id" in result.stdout

    def test_update_item(self, runner: CliRunner, service, item):
        result = runner.invoke(
            app, ["item", "update", item.id, "--title", "Fiasco", "--author", "Lem"]
        )
        assert result.exit_code == 0
        assert service.get_item(item.id).title == "Fiasco"

    def test_delete_item(self, runner: CliRunner, service, item):
        result = runner.invoke(app, ["item", "delete", item.id])
        assert result.exit_code == 0
        assert service.list_items() == []

    def test_search(self, runner: CliRunner, service, item):
        service.add_item({"title": "Dune", "author": "Frank Herbert"})
        result = runner.invoke(app, ["item", "search", "--author", "lem"])
        assert result.exit_code == 0
        assert "Solaris" in result.stdout
        assert "Dune" not in result.stdout

    def test_search_unavailable(self, runner: CliRunner, item):
        result = runner.invoke(app, ["item", "search", "--unavailable"])
        assert result.exit_code == 0
        assert "No items found" in result.stdout


class TestUserCommands:
    """Tests for user commands."""

    def test_register(self, runner: CliRunner):
        result = runner.invoke(app, ["user", "register", "Grace", "grace@example.com", "--role", "LIBRARIAN"])
        assert result.exit_code == 0
        assert "Registered Grace" in result.stdout

    def test_register_duplicate_email(self, runner: CliRunner, member):
        result = runner.invoke(app, ["user", "register", "Other", "ada@example.com"])
        assert result.exit_code == 1
        assert "already registered" in result.stdout

    def test_show(self, runner: CliRunner, service, item, member):
        service.borrow_item(item.id, member.id)
        result = runner.invoke(app, ["user", "show", member.id])
        assert result.exit_code == 0
        assert "ada@example.com" in result.stdout
        assert "Open loans: 1" in result.stdout

    def test_update(self, runner: CliRunner, member):
        result = runner.invoke(
            app, ["user", "update", member.id, "--name", "Ada L", "--email", "ada@example.com"]
        )
        assert result.exit_code == 0
        assert UserService(get_db()).get_user(member.id).name == "Ada L"

    def test_update_keeps_role_when_omitted(self, runner: CliRunner):
        users = UserService(get_db())
        librarian = users.register_user(
            {"name": "Lib", "email": "lib@example.com", "role": "LIBRARIAN"}
        )
        result = runner.invoke(
            app, ["user", "update", librarian.id, "--name", "Lib R", "--email", "lib@example.com"]
        )
        assert result.exit_code == 0
        assert users.get_user(librarian.id).role == "LIBRARIAN"


class TestLendingCommands:
    """Tests for borrow, return and loan reports."""

    def test_borrow_and_return(self, runner: CliRunner, service, item, member):
        result = runner.invoke(app, ["borrow", item.id, member.id])
        assert result.exit_code == 0
        assert "borrowed" in result.stdout
        assert service.get_item(item.id).available is False

        result = runner.invoke(app, ["return", item.id])
        assert result.exit_code == 0
        assert "returned" in result.stdout
        assert "Late fee" not in result.stdout
        assert service.get_item(item.id).available is True

    def test_borrow_unavailable(self, runner: CliRunner, service, item, member):
        service.borrow_item(item.id, member.id)
        result = runner.invoke(app, ["borrow", item.id, member.id])
        assert result.exit_code == 1
        assert "not available" in result.stdout

    def test_return_available_item(self, runner: CliRunner, item):
        result = runner.invoke(app, ["return", item.id])
        assert result.exit_code == 1
        assert "(409)" in result.stdout

    def test_late_return_shows_fee(self, runner: CliRunner, item, member):
        past = LendingService(get_db(), today=lambda: date(2020, 1, 1))
        past.borrow_item(item.id, member.id)

        result = runner.invoke(app, ["return", item.id])
        assert result.exit_code == 0
        assert "Late fee" in result.stdout

    def test_history_requires_one_filter(self, runner: CliRunner):
        result = runner.invoke(app, ["loans", "history"])
        assert result.exit_code == 1
        assert "exactly one" in result.stdout

    def test_history_for_item(self, runner: CliRunner, service, item, member):
        service.borrow_item(item.id, member.id)
        result = runner.invoke(app, ["loans", "history", "--item", item.id])
        assert result.exit_code == 0
        assert "Loan History" in result.stdout

    def test_history_for_unknown_user(self, runner: CliRunner):
        result = runner.invoke(app, ["loans", "history", "--user", str(uuid4())])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_overdue(self, runner: CliRunner, item, member):
        result = runner.invoke(app, ["loans", "overdue"])
        assert "No overdue loans" in result.stdout

        past = LendingService(get_db(), today=lambda: date(2020, 1, 1))
        past.borrow_item(item.id, member.id)

        result = runner.invoke(app, ["loans", "overdue"])
        assert result.exit_code == 0
        assert "Overdue Loans" in result.stdout


class TestTableHelpers:
    """Tests for the Rich table helpers."""

    @staticmethod
    def render(table) -> str:
        console = Console(record=True, width=250)
        console.print(table)
        return console.export_text()

    def test_item_table(self, service, item, member):
        service.borrow_item(item.id, member.id)
        stored = service.get_item(item.id)

        text = self.render(format_item_table([stored]))
        assert item.id in text
        assert "on loan" in text
        assert stored.due_date in text

    def test_loan_table(self, service, item, member):
        service.borrow_item(item.id, member.id)
        service.return_item(item.id)
        service.borrow_item(item.id, member.id)

        text = self.render(format_loan_table(service.get_loan_history_for_item(item.id)))
        assert "open" in text
        assert date.today().isoformat() in text
        assert "0.00" in text
