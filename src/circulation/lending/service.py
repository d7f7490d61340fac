"""Lending service: item catalog operations and the borrow/return protocol."""

import logging
from datetime import date
from typing import Any, Callable, Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from ..db.models import Item, Loan
from ..db.schemas import ItemCreate, ItemUpdate, OverdueLoan
from ..db.sqlite import Database, get_db
from ..errors import (
    AlreadyReturnedError,
    LimitExceededError,
    NotAvailableError,
    NotFoundError,
)
from ..stores.base import ItemStore, LoanStore, UserStore
from ..stores.sql import SqlItemStore, SqlLoanStore, SqlUserStore
from ..validation import parse_id, validate_model
from .policy import LendingPolicy

logger = logging.getLogger(__name__)

Identifier = Union[str, UUID]


class LendingService:
    """Manages the item catalog and the lending workflow.

    The service alone decides when item and loan fields change; stores only
    persist.  Borrow and return each run as one unit of work, and the item
    state transition inside it is a conditional write, so concurrent callers
    racing for the same item cannot both win.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        policy: Optional[LendingPolicy] = None,
        item_store: Optional[ItemStore] = None,
        user_store: Optional[UserStore] = None,
        loan_store: Optional[LoanStore] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """Initialize lending service.

        Args:
            db: Database instance
            policy: Loan period, late fee and borrowing limit
            item_store: Item storage (defaults to SQL storage on ``db``)
            user_store: User storage (defaults to SQL storage on ``db``)
            loan_store: Loan storage (defaults to SQL storage on ``db``)
            today: Calendar source, ``date.today`` unless pinned
        """
        self.db = db or get_db()
        self.policy = policy or LendingPolicy.from_config()
        self.items = item_store or SqlItemStore(self.db)
        self.users = user_store or SqlUserStore(self.db)
        self.loans = loan_store or SqlLoanStore(self.db)
        self.today = today or date.today

    # -------------------------------------------------------------------------
    # Item Catalog
    # -------------------------------------------------------------------------

    def add_item(self, data: Union[ItemCreate, dict[str, Any]]) -> Item:
        """Add an item to the catalog.

        The new item is always available with no borrower or due date,
        whatever lending values the caller supplied.

        Args:
            data: Item creation data

        Returns:
            Stored item with its generated ID
        """
        data = validate_model(ItemCreate, data)
        item = Item(title=data.title, author=data.author)
        item.reset_lending_state()

        with self.db.get_session() as session:
            stored = self.items.put(item, session=session)

        logger.info("Added item %s", stored.id)
        return stored

    def get_item(self, item_id: Identifier) -> Item:
        """Get an item by ID.

        Raises:
            NotFoundError: If the item does not exist
        """
        item_id = parse_id(item_id, "item_id")
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    def list_items(self) -> list[Item]:
        """List all items."""
        return self.items.list_all()

    def update_item(
        self,
        item_id: Identifier,
        data: Union[ItemUpdate, dict[str, Any]],
    ) -> Item:
        """Replace an item's title and author.

        Lending state is left untouched; it only changes through borrow and
        return.

        Raises:
            NotFoundError: If the item does not exist
        """
        item_id = parse_id(item_id, "item_id")
        data = validate_model(ItemUpdate, data)

        with self.db.get_session() as session:
            item = self.items.get(item_id, session=session)
            if item is None:
                raise NotFoundError("item", item_id)

            # Only these columns are dirtied, so a concurrent borrow/return
            # of the same item is not overwritten.
            item.title = data.title
            item.author = data.author
            stored = self.items.put(item, session=session)

        logger.info("Updated item %s", item_id)
        return stored

    def delete_item(self, item_id: Identifier) -> None:
        """Delete an item. Its loans stay behind as history.

        Raises:
            NotFoundError: If the item does not exist
        """
        item_id = parse_id(item_id, "item_id")

        with self.db.get_session() as session:
            if not self.items.exists_by_id(item_id, session=session):
                raise NotFoundError("item", item_id)
            self.items.delete(item_id, session=session)

        logger.info("Deleted item %s", item_id)

    def search_items(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> list[Item]:
        """Search items.

        Args:
            title: Case-insensitive title fragment
            author: Case-insensitive author fragment
            available: Exact availability

        Returns:
            Items matching all supplied filters; every item if none supplied
        """
        if title is None and author is None and available is None:
            return self.list_items()
        return self.items.search(title=title, author=author, available=available)

    # -------------------------------------------------------------------------
    # Borrow / Return
    # -------------------------------------------------------------------------

    def borrow_item(self, item_id: Identifier, user_id: Identifier) -> Item:
        """Lend an item to a user.

        Checks run in a fixed order: item exists, item available, user
        exists, user under the borrowing limit.  An unavailable item is
        reported even when the user is unknown.  Malformed identifiers are
        rejected before any of these checks, so a malformed user ID raises
        ``InvalidInputError`` even for an unavailable item.

        Args:
            item_id: Item to borrow
            user_id: Borrowing user

        Returns:
            The item in its borrowed state

        Raises:
            InvalidInputError: If either ID is not a valid identifier
            NotFoundError: If the item or user does not exist
            NotAvailableError: If the item is on loan
            LimitExceededError: If the user holds too many open loans
        """
        item_id = parse_id(item_id, "item_id")
        user_id = parse_id(user_id, "user_id")

        with self.db.get_session() as session:
            item = self.items.get(item_id, session=session)
            if item is None:
                raise NotFoundError("item", item_id)
            if not item.available:
                raise NotAvailableError(item_id)

            if self.users.get(user_id, session=session) is None:
                raise NotFoundError("user", user_id)

            open_loans = self.loans.count_open_by_user(user_id, session=session)
            if self.policy.limit_reached(open_loans):
                logger.info(
                    "User %s at borrowing limit (%d open loans)", user_id, open_loans
                )
                raise LimitExceededError(user_id, self.policy.borrowing_limit)

            borrow_date = self.today()
            due_date = self.policy.due_date_for(borrow_date)

            if not self.items.mark_borrowed(item_id, user_id, due_date, session=session):
                # Another caller changed the item since it was read
                logger.warning("Lost borrow race for item %s (user %s)", item_id, user_id)
                self._raise_for_lost_race(item_id, session)

            loan = Loan(
                item_id=item_id,
                user_id=user_id,
                borrow_date=borrow_date.isoformat(),
                due_date=due_date.isoformat(),
                return_date=None,
                late_fee=0.0,
            )
            try:
                self.loans.put(loan, session=session)
            except IntegrityError as exc:
                # An open loan already exists for an item marked available
                logger.error("Open loan already recorded for item %s", item_id)
                raise NotAvailableError(item_id) from exc

            item = self.items.get(item_id, session=session)

        logger.info("Item %s borrowed by user %s, due %s", item_id, user_id, due_date)
        return item

    def return_item(self, item_id: Identifier) -> Item:
        """Take back a borrowed item, sealing its open loan.

        The late fee is the number of days past the due date times the fee
        per day, zero when returned on or before the due date.

        Returns:
            The item in its available state

        Raises:
            NotFoundError: If the item does not exist
            AlreadyReturnedError: If the item has no open loan
        """
        item_id = parse_id(item_id, "item_id")

        with self.db.get_session() as session:
            item = self.items.get(item_id, session=session)
            if item is None:
                raise NotFoundError("item", item_id)

            loan = self.loans.find_open_by_item(item_id, session=session)
            if loan is None:
                raise AlreadyReturnedError(item_id)

            return_date = self.today()
            late_fee = self.policy.late_fee(loan.due_on, return_date)

            if not self.loans.seal(loan.id, return_date, late_fee, session=session):
                logger.warning("Lost return race for item %s", item_id)
                raise AlreadyReturnedError(item_id)

            if not self.items.mark_returned(item_id, session=session):
                logger.warning(
                    "Item %s was already available while loan %s was open", item_id, loan.id
                )

            item = self.items.get(item_id, session=session)

        logger.info(
            "Item %s returned by user %s, late fee %.2f", item_id, loan.user_id, late_fee
        )
        return item

    def _raise_for_lost_race(self, item_id: str, session) -> None:
        """Re-read an item whose conditional write failed and raise."""
        if self.items.get(item_id, session=session) is None:
            raise NotFoundError("item", item_id)
        raise NotAvailableError(item_id)

    # -------------------------------------------------------------------------
    # Loan History and Reports
    # -------------------------------------------------------------------------

    def count_open_loans(self, user_id: Identifier) -> int:
        """Number of open loans held by a user."""
        return self.loans.count_open_by_user(parse_id(user_id, "user_id"))

    def get_loan_history_for_item(self, item_id: Identifier) -> list[Loan]:
        """Get loan history for an item, newest first.

        Loans of a deleted item are still returned.
        """
        return self.loans.list_for_item(parse_id(item_id, "item_id"))

    def get_loan_history_for_user(self, user_id: Identifier) -> list[Loan]:
        """Get loan history for a user, newest first.

        Raises:
            NotFoundError: If the user does not exist
        """
        user_id = parse_id(user_id, "user_id")
        if self.users.get(user_id) is None:
            raise NotFoundError("user", user_id)
        return self.loans.list_for_user(user_id)

    def accrued_fee(self, loan: Loan) -> float:
        """Late fee of a loan: final if sealed, as of today if open."""
        if not loan.is_open:
            return loan.late_fee
        return self.policy.late_fee(loan.due_on, self.today())

    def list_overdue_loans(self) -> list[OverdueLoan]:
        """Open loans past their due date, oldest due date first."""
        today = self.today()
        return [
            OverdueLoan(
                loan_id=loan.id,
                item_id=loan.item_id,
                user_id=loan.user_id,
                due_date=loan.due_on,
                days_overdue=loan.days_overdue(today),
                accrued_fee=self.accrued_fee(loan),
            )
            for loan in self.loans.list_overdue(today)
        ]
