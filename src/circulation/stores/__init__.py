"""Storage for items, users and loans."""

from .base import ItemStore, LoanStore, UserStore
from .sql import SqlItemStore, SqlLoanStore, SqlUserStore

__all__ = [
    "ItemStore",
    "LoanStore",
    "UserStore",
    "SqlItemStore",
    "SqlLoanStore",
    "SqlUserStore",
]
