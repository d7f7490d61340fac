"""Database module for local SQLite storage."""

from .models import Base, Item, Loan, User
from .schemas import (
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    LoanResponse,
    OverdueLoan,
    UserCreate,
    UserResponse,
    UserRole,
    UserUpdate,
)
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Base",
    "Item",
    "Loan",
    "User",
    "ItemCreate",
    "ItemResponse",
    "ItemUpdate",
    "LoanResponse",
    "OverdueLoan",
    "UserCreate",
    "UserResponse",
    "UserRole",
    "UserUpdate",
    "Database",
    "get_db",
    "reset_db",
]
