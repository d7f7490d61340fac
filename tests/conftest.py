"""Pytest configuration and shared fixtures.

This module provides fixtures for testing circulation, including
in-memory and file-backed databases, services with a pinned calendar
and sample records.
"""

import os
import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Generator

import pytest

from circulation.config import reset_config
from circulation.db.models import Item, User
from circulation.db.sqlite import Database, reset_db
from circulation.lending import LendingPolicy, LendingService
from circulation.users import UserService

TODAY = date(2026, 3, 2)


class FixedClock:
    """Calendar source that only moves when told to."""

    def __init__(self, today: date = TODAY):
        self.current = today

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> None:
        self.current += timedelta(days=days)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "circulation.db"


@pytest.fixture(scope="function")
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture(scope="function")
def file_db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed database (needed when threads share it)."""
    reset_db()
    reset_config()
    os.environ["CIRCULATION_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path), timeout=30)
    database.create_tables()
    yield database

    # Cleanup
    database.engine.dispose()
    reset_db()
    if "CIRCULATION_DB_PATH" in os.environ:
        del os.environ["CIRCULATION_DB_PATH"]


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FixedClock:
    """A calendar pinned to TODAY."""
    return FixedClock()


@pytest.fixture
def policy() -> LendingPolicy:
    """Default lending policy: 14 days, 0.5 per day, 5 open loans."""
    return LendingPolicy()


@pytest.fixture
def service(db: Database, policy: LendingPolicy, clock: FixedClock) -> LendingService:
    """Create a LendingService with test database."""
    return LendingService(db, policy=policy, today=clock)


@pytest.fixture
def users(db: Database) -> UserService:
    """Create a UserService with test database."""
    return UserService(db)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_item(service: LendingService) -> Item:
    """Add a sample item."""
    return service.add_item({"title": "The Left Hand of Darkness", "author": "Ursula K. Le Guin"})


@pytest.fixture
def sample_user(users: UserService) -> User:
    """Register a sample user."""
    return users.register_user({"name": "Ada Reader", "email": "ada@example.com"})


@pytest.fixture
def catalog(service: LendingService) -> list[Item]:
    """Add several items."""
    data = [
        ("A Novel Idea", "Jane Austen"),
        ("Novellas of the North", "Sigrid Undset"),
        ("Emma", "Jane Austen"),
        ("Dune", "Frank Herbert"),
    ]
    return [service.add_item({"title": title, "author": author}) for title, author in data]
