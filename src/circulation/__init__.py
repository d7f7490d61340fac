"""Circulation: a lending desk for catalog items.

Tracks lendable items, the users who borrow them and the loans between
them, enforcing borrowing limits and late fees.
"""

from .errors import (
    AlreadyReturnedError,
    CirculationError,
    InvalidInputError,
    LimitExceededError,
    NotAvailableError,
    NotFoundError,
)
from .lending import LendingPolicy, LendingService
from .users import UserService

__version__ = "0.1.0"

__all__ = [
    "AlreadyReturnedError",
    "CirculationError",
    "InvalidInputError",
    "LimitExceededError",
    "NotAvailableError",
    "NotFoundError",
    "LendingPolicy",
    "LendingService",
    "UserService",
]
