"""Lending policy: loan period, late fees and the borrowing limit."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..config import Config, get_config

DEFAULT_LOAN_PERIOD_DAYS = 14
DEFAULT_LATE_FEE_PER_DAY = 0.5
DEFAULT_BORROWING_LIMIT = 5


@dataclass(frozen=True)
class LendingPolicy:
    """Policy values threaded into the lending service."""

    loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS
    late_fee_per_day: float = DEFAULT_LATE_FEE_PER_DAY
    borrowing_limit: int = DEFAULT_BORROWING_LIMIT

    def __post_init__(self):
        if self.loan_period_days < 1:
            raise ValueError("loan_period_days must be at least 1")
        if self.late_fee_per_day < 0:
            raise ValueError("late_fee_per_day cannot be negative")
        if self.borrowing_limit < 1:
            raise ValueError("borrowing_limit must be at least 1")

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "LendingPolicy":
        """Build the policy from application configuration."""
        config = config or get_config()
        return cls(
            loan_period_days=config.loan_period_days,
            late_fee_per_day=config.late_fee_per_day,
            borrowing_limit=config.borrowing_limit,
        )

    def due_date_for(self, borrow_date: date) -> date:
        """Due date of a loan starting on ``borrow_date``."""
        return borrow_date + timedelta(days=self.loan_period_days)

    def late_fee(self, due_date: date, return_date: date) -> float:
        """Fee for returning on ``return_date``; zero on or before the due date."""
        days_overdue = max(0, (return_date - due_date).days)
        return days_overdue * self.late_fee_per_day

    def limit_reached(self, open_loans: int) -> bool:
        """Check if a user holding ``open_loans`` may not borrow more."""
        return open_loans >= self.borrowing_limit
