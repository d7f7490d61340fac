"""Pydantic schemas for data validation.

These schemas validate caller input for items and users and shape the
records returned to callers.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserRole(str, Enum):
    """Role of a library user. Carried through, not used by lending."""

    MEMBER = "MEMBER"  # Borrowing rights
    LIBRARIAN = "LIBRARIAN"  # Manages items and users
    ADMIN = "ADMIN"


# ============================================================================
# Item Schemas
# ============================================================================


class ItemDetails(BaseModel):
    """Catalog fields of an item."""

    title: str = Field(..., min_length=1, max_length=500, description="Item title")
    author: str = Field(..., min_length=1, max_length=500, description="Item author")

    @field_validator("title", "author")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank values."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ItemCreate(ItemDetails):
    """Schema for adding an item.

    Lending fields may be supplied by callers but are always reset when
    the item is added.
    """

    available: bool = True
    borrower_id: Optional[UUID] = None
    due_date: Optional[date] = None


class ItemUpdate(ItemDetails):
    """Schema for updating an item. Only title and author are applied."""

    available: Optional[bool] = None
    borrower_id: Optional[UUID] = None
    due_date: Optional[date] = None


class ItemResponse(BaseModel):
    """Schema for item responses."""

    id: UUID
    title: str
    author: str
    available: bool
    borrower_id: Optional[UUID]
    due_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# User Schemas
# ============================================================================


class UserBase(BaseModel):
    """Base user fields."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=200)
    role: UserRole = Field(default=UserRole.MEMBER)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        """Reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        """Normalize and check email shape."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("must be a valid email address")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def upper_role(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class UserCreate(UserBase):
    """Schema for registering a user."""

    pass


class UserUpdate(UserBase):
    """Schema for updating a user. Name, email and role are replaced."""

    pass


class UserResponse(UserBase):
    """Schema for user responses."""

    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Loan Schemas
# ============================================================================


class LoanResponse(BaseModel):
    """Schema for loan responses."""

    id: UUID
    item_id: UUID
    user_id: UUID
    borrow_date: date
    due_date: date
    return_date: Optional[date]
    late_fee: float = Field(..., ge=0)
    is_open: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OverdueLoan(BaseModel):
    """An open loan past its due date."""

    loan_id: UUID
    item_id: UUID
    user_id: UUID
    due_date: date
    days_overdue: int
    accrued_fee: float
