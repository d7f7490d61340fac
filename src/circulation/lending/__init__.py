"""Lending module.

Provides functionality for:
- Item catalog management and search
- Borrowing and returning items
- Borrowing limits and late fees
- Loan history and overdue reports
"""

from .policy import LendingPolicy
from .service import LendingService

__all__ = [
    "LendingPolicy",
    "LendingService",
]
