"""Store contracts consumed by the lending services.

Stores own durability only; they apply no business rules.  Every method
takes an optional ``session``: when given, the call joins that unit of
work, otherwise the store opens and commits its own.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..db.models import Item, Loan, User


class ItemStore(ABC):
    """Durable storage of items keyed by identifier."""

    @abstractmethod
    def put(self, item: Item, session: Optional[Session] = None) -> Item:
        """Insert or replace an item, returning the stored record."""

    @abstractmethod
    def get(self, item_id: str, session: Optional[Session] = None) -> Optional[Item]:
        """Point lookup."""

    @abstractmethod
    def list_all(self, session: Optional[Session] = None) -> list[Item]:
        """Every stored item."""

    @abstractmethod
    def exists_by_id(self, item_id: str, session: Optional[Session] = None) -> bool:
        """Check whether an item exists."""

    @abstractmethod
    def delete(self, item_id: str, session: Optional[Session] = None) -> bool:
        """Remove an item. Returns True if a record was removed."""

    @abstractmethod
    def search(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        available: Optional[bool] = None,
        session: Optional[Session] = None,
    ) -> list[Item]:
        """Items matching every supplied filter.

        ``title`` and ``author`` match as case-insensitive substrings,
        ``available`` matches exactly.  Omitted filters do not constrain.
        """

    @abstractmethod
    def mark_borrowed(
        self,
        item_id: str,
        borrower_id: str,
        due_date: date,
        session: Optional[Session] = None,
    ) -> bool:
        """Conditionally move an available item to borrowed.

        A single conditional write: succeeds only if the item exists and is
        available at the moment of writing.  Of any number of concurrent
        callers, exactly one gets True.
        """

    @abstractmethod
    def mark_returned(self, item_id: str, session: Optional[Session] = None) -> bool:
        """Conditionally move a borrowed item back to available."""


class UserStore(ABC):
    """Durable storage of users keyed by identifier."""

    @abstractmethod
    def get(self, user_id: str, session: Optional[Session] = None) -> Optional[User]:
        """Point lookup."""

    @abstractmethod
    def get_by_email(self, email: str, session: Optional[Session] = None) -> Optional[User]:
        """Lookup by (normalized) email address."""

    @abstractmethod
    def put(self, user: User, session: Optional[Session] = None) -> User:
        """Insert or replace a user, returning the stored record."""


class LoanStore(ABC):
    """Durable storage of loan records. Loans are never deleted."""

    @abstractmethod
    def put(self, loan: Loan, session: Optional[Session] = None) -> Loan:
        """Insert or replace a loan, returning the stored record."""

    @abstractmethod
    def get(self, loan_id: str, session: Optional[Session] = None) -> Optional[Loan]:
        """Point lookup."""

    @abstractmethod
    def find_open_by_item(self, item_id: str, session: Optional[Session] = None) -> Optional[Loan]:
        """The single open loan for an item, if any."""

    @abstractmethod
    def count_open_by_user(self, user_id: str, session: Optional[Session] = None) -> int:
        """Number of open loans held by a user."""

    @abstractmethod
    def seal(
        self,
        loan_id: str,
        return_date: date,
        late_fee: float,
        session: Optional[Session] = None,
    ) -> bool:
        """Conditionally set return date and fee on an open loan.

        Returns False if the loan is unknown or already sealed.
        """

    @abstractmethod
    def list_for_item(self, item_id: str, session: Optional[Session] = None) -> list[Loan]:
        """Loan history of an item, newest first."""

    @abstractmethod
    def list_for_user(self, user_id: str, session: Optional[Session] = None) -> list[Loan]:
        """Loan history of a user, newest first."""

    @abstractmethod
    def list_overdue(self, today: date, session: Optional[Session] = None) -> list[Loan]:
        """Open loans due before ``today``, oldest due date first."""
