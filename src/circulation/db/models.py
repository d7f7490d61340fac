"""SQLAlchemy ORM models for the lending desk database.

Tables:
- items: Lendable catalog entries and their current lending state
- users: People who borrow items
- loans: One record per borrow-to-return cycle (never deleted)
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    Index,
    String,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import UserRole


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Item(Base):
    """Item model - a lendable catalog entry.

    ``available``, ``borrower_id`` and ``due_date`` only change together:
    an available item has neither borrower nor due date, an unavailable
    item has both.
    """

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint(
            "(available AND borrower_id IS NULL AND due_date IS NULL)"
            " OR (NOT available AND borrower_id IS NOT NULL AND due_date IS NOT NULL)",
            name="ck_items_lending_state",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Catalog fields
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)

    # Lending state
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    borrower_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    due_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now)
    updated_at: Mapped[str] = mapped_column(String(32), default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, title='{self.title}', available={self.available})>"

    @property
    def due_on(self) -> Optional[date]:
        """Due date as a date object."""
        return date.fromisoformat(self.due_date) if self.due_date else None

    @property
    def lending_state_consistent(self) -> bool:
        """Check the availability/borrower/due-date invariant."""
        if self.available:
            return self.borrower_id is None and self.due_date is None
        return self.borrower_id is not None and self.due_date is not None

    def reset_lending_state(self) -> None:
        """Make the item available with no borrower or due date."""
        self.available = True
        self.borrower_id = None
        self.due_date = None


class User(Base):
    """User model - a person who can borrow items."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.MEMBER.value)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now)
    updated_at: Mapped[str] = mapped_column(String(32), default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}', role={self.role})>"


class Loan(Base):
    """Loan model - one borrow-to-return cycle of an item by a user.

    A loan is open while ``return_date`` is unset.  The partial unique
    index allows at most one open loan per item.
    """

    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("late_fee >= 0", name="ck_loans_late_fee_non_negative"),
        Index(
            "ux_loans_open_item",
            "item_id",
            unique=True,
            sqlite_where=text("return_date IS NULL"),
            postgresql_where=text("return_date IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Deleting an item leaves its loans behind as history
    item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Dates
    borrow_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    due_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    return_date: Mapped[Optional[str]] = mapped_column(String(10), index=True)  # ISO date

    late_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now)
    updated_at: Mapped[str] = mapped_column(String(32), default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, item_id={self.item_id}, user_id={self.user_id}, open={self.is_open})>"

    @property
    def is_open(self) -> bool:
        """Check if the loan has not been returned yet."""
        return self.return_date is None

    @property
    def borrowed_on(self) -> date:
        return date.fromisoformat(self.borrow_date)

    @property
    def due_on(self) -> date:
        return date.fromisoformat(self.due_date)

    @property
    def returned_on(self) -> Optional[date]:
        return date.fromisoformat(self.return_date) if self.return_date else None

    def days_overdue(self, today: Optional[date] = None) -> int:
        """Days past the due date (0 if not overdue).

        For a sealed loan this is measured at the return date.
        """
        end = self.returned_on or today or date.today()
        return max(0, (end - self.due_on).days)

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """Check if an open loan is past its due date."""
        return self.is_open and self.days_overdue(today) > 0
