"""SQLAlchemy implementations of the store contracts."""

from datetime import date
from typing import Callable, Optional, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..db.models import Base, Item, Loan, User, utc_now
from ..db.sqlite import Database
from .base import ItemStore, LoanStore, UserStore

T = TypeVar("T")


class SqlStore:
    """Shared session handling for the SQL stores."""

    def __init__(self, db: Database):
        self.db = db

    def _run(self, op: Callable[[Session], T], session: Optional[Session] = None) -> T:
        """Run ``op`` in the caller's session, or in a fresh one.

        Records returned from a fresh session are detached so they can be
        used after it closes.
        """
        if session is not None:
            return op(session)

        with self.db.get_session() as s:
            result = op(s)
            if isinstance(result, Base):
                s.flush()
                s.expunge(result)
            elif isinstance(result, list):
                for record in result:
                    if isinstance(record, Base):
                        s.expunge(record)
            return result


class SqlItemStore(SqlStore, ItemStore):
    """Items stored in the ``items`` table."""

    def put(self, item: Item, session: Optional[Session] = None) -> Item:
        def _put(s: Session) -> Item:
            stored = s.merge(item)
            s.flush()
            return stored

        return self._run(_put, session)

    def get(self, item_id: str, session: Optional[Session] = None) -> Optional[Item]:
        def _get(s: Session) -> Optional[Item]:
            # Always read through to the database; the lending state may
            # have been changed by a conditional write in this session.
            return s.get(Item, item_id, populate_existing=True)

        return self._run(_get, session)

    def list_all(self, session: Optional[Session] = None) -> list[Item]:
        def _list(s: Session) -> list[Item]:
            stmt = select(Item).order_by(Item.title, Item.id)
            return list(s.execute(stmt).scalars().all())

        return self._run(_list, session)

    def exists_by_id(self, item_id: str, session: Optional[Session] = None) -> bool:
        def _exists(s: Session) -> bool:
            stmt = select(Item.id).where(Item.id == item_id)
            return s.execute(stmt).scalar_one_or_none() is not None

        return self._run(_exists, session)

    def delete(self, item_id: str, session: Optional[Session] = None) -> bool:
        def _delete(s: Session) -> bool:
            result = s.execute(delete(Item).where(Item.id == item_id))
            return result.rowcount == 1

        return self._run(_delete, session)

    def search(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        available: Optional[bool] = None,
        session: Optional[Session] = None,
    ) -> list[Item]:
        def _search(s: Session) -> list[Item]:
            stmt = select(Item)

            if title is not None:
                stmt = stmt.where(func.lower(Item.title).contains(title.lower(), autoescape=True))
            if author is not None:
                stmt = stmt.where(func.lower(Item.author).contains(author.lower(), autoescape=True))
            if available is not None:
                stmt = stmt.where(Item.available.is_(available))

            stmt = stmt.order_by(Item.title, Item.id)
            return list(s.execute(stmt).scalars().all())

        return self._run(_search, session)

    def mark_borrowed(
        self,
        item_id: str,
        borrower_id: str,
        due_date: date,
        session: Optional[Session] = None,
    ) -> bool:
        def _mark(s: Session) -> bool:
            stmt = (
                update(Item)
                .where(Item.id == item_id, Item.available.is_(True))
                .values(
                    available=False,
                    borrower_id=borrower_id,
                    due_date=due_date.isoformat(),
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            return s.execute(stmt).rowcount == 1

        return self._run(_mark, session)

    def mark_returned(self, item_id: str, session: Optional[Session] = None) -> bool:
        def _mark(s: Session) -> bool:
            stmt = (
                update(Item)
                .where(Item.id == item_id, Item.available.is_(False))
                .values(
                    available=True,
                    borrower_id=None,
                    due_date=None,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            return s.execute(stmt).rowcount == 1

        return self._run(_mark, session)


class SqlUserStore(SqlStore, UserStore):
    """Users stored in the ``users`` table."""

    def get(self, user_id: str, session: Optional[Session] = None) -> Optional[User]:
        def _get(s: Session) -> Optional[User]:
            return s.get(User, user_id)

        return self._run(_get, session)

    def get_by_email(self, email: str, session: Optional[Session] = None) -> Optional[User]:
        def _get(s: Session) -> Optional[User]:
            stmt = select(User).where(func.lower(User.email) == email.lower())
            return s.execute(stmt).scalar_one_or_none()

        return self._run(_get, session)

    def put(self, user: User, session: Optional[Session] = None) -> User:
        def _put(s: Session) -> User:
            stored = s.merge(user)
            s.flush()
            return stored

        return self._run(_put, session)


class SqlLoanStore(SqlStore, LoanStore):
    """Loans stored in the ``loans`` table."""

    def put(self, loan: Loan, session: Optional[Session] = None) -> Loan:
        def _put(s: Session) -> Loan:
            stored = s.merge(loan)
            s.flush()
            return stored

        return self._run(_put, session)

    def get(self, loan_id: str, session: Optional[Session] = None) -> Optional[Loan]:
        def _get(s: Session) -> Optional[Loan]:
            return s.get(Loan, loan_id, populate_existing=True)

        return self._run(_get, session)

    def find_open_by_item(self, item_id: str, session: Optional[Session] = None) -> Optional[Loan]:
        def _find(s: Session) -> Optional[Loan]:
            stmt = select(Loan).where(Loan.item_id == item_id, Loan.return_date.is_(None))
            return s.execute(stmt).scalar_one_or_none()

        return self._run(_find, session)

    def count_open_by_user(self, user_id: str, session: Optional[Session] = None) -> int:
        def _count(s: Session) -> int:
            stmt = (
                select(func.count())
                .select_from(Loan)
                .where(Loan.user_id == user_id, Loan.return_date.is_(None))
            )
            return s.execute(stmt).scalar() or 0

        return self._run(_count, session)

    def seal(
        self,
        loan_id: str,
        return_date: date,
        late_fee: float,
        session: Optional[Session] = None,
    ) -> bool:
        def _seal(s: Session) -> bool:
            stmt = (
                update(Loan)
                .where(Loan.id == loan_id, Loan.return_date.is_(None))
                .values(
                    return_date=return_date.isoformat(),
                    late_fee=late_fee,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            return s.execute(stmt).rowcount == 1

        return self._run(_seal, session)

    def list_for_item(self, item_id: str, session: Optional[Session] = None) -> list[Loan]:
        def _list(s: Session) -> list[Loan]:
            stmt = (
                select(Loan)
                .where(Loan.item_id == item_id)
                .order_by(Loan.borrow_date.desc(), Loan.created_at.desc())
            )
            return list(s.execute(stmt).scalars().all())

        return self._run(_list, session)

    def list_for_user(self, user_id: str, session: Optional[Session] = None) -> list[Loan]:
        def _list(s: Session) -> list[Loan]:
            stmt = (
                select(Loan)
                .where(Loan.user_id == user_id)
                .order_by(Loan.borrow_date.desc(), Loan.created_at.desc())
            )
            return list(s.execute(stmt).scalars().all())

        return self._run(_list, session)

    def list_overdue(self, today: date, session: Optional[Session] = None) -> list[Loan]:
        def _list(s: Session) -> list[Loan]:
            stmt = (
                select(Loan)
                .where(Loan.return_date.is_(None), Loan.due_date < today.isoformat())
                .order_by(Loan.due_date, Loan.borrow_date)
            )
            return list(s.execute(stmt).scalars().all())

        return self._run(_list, session)
