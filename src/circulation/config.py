"""Configuration management for circulation.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


DEFAULT_DB_PATH = str(Path.home() / ".circulation" / "circulation.db")


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: str
    db_timeout: float  # seconds a writer waits on a locked database file

    # Lending policy
    loan_period_days: int
    late_fee_per_day: float
    borrowing_limit: int

    # Logging
    log_level: str
    log_file: Optional[str]

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path = os.environ.get("CIRCULATION_DB_PATH", DEFAULT_DB_PATH)
        if db_path != ":memory:":
            db_path = str(Path(db_path).expanduser())

        return cls(
            db_path=db_path,
            db_timeout=float(os.environ.get("CIRCULATION_DB_TIMEOUT", "30")),
            loan_period_days=int(os.environ.get("CIRCULATION_LOAN_PERIOD_DAYS", "14")),
            late_fee_per_day=float(os.environ.get("CIRCULATION_LATE_FEE_PER_DAY", "0.5")),
            borrowing_limit=int(os.environ.get("CIRCULATION_BORROWING_LIMIT", "5")),
            log_level=os.environ.get("CIRCULATION_LOG_LEVEL", "INFO"),
            log_file=os.environ.get("CIRCULATION_LOG_FILE") or None,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.loan_period_days < 1:
            errors.append(f"Loan period must be at least 1 day, got {self.loan_period_days}")
        if self.late_fee_per_day < 0:
            errors.append(f"Late fee per day cannot be negative, got {self.late_fee_per_day}")
        if self.borrowing_limit < 1:
            errors.append(f"Borrowing limit must be at least 1, got {self.borrowing_limit}")

        # Check database directory is writable
        if self.db_path != ":memory:":
            db_dir = Path(self.db_path).parent
            if not db_dir.exists():
                try:
                    db_dir.mkdir(parents=True, exist_ok=True)
                except PermissionError:
                    errors.append(f"Cannot create database directory: {db_dir}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
