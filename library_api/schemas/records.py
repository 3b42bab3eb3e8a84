"""Storage-agnostic records passed between the stores and the services.

Field names are the canonical column names used by every backend and by the
JSON API.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CopyStatus(str, Enum):
    AVAILABLE = "available"
    BORROWED = "borrowed"


class Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True, validate_assignment=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Category(Record):
    category_id: str
    category_name: str = ""


class Book(Record):
    book_id: str
    title: str
    author: str = ""
    category_id: Optional[str] = None
    description: Optional[str] = ""
    total: int = Field(0, ge=0)
    available: int = Field(0, ge=0)

    @field_validator("category_id", mode="before")
    @classmethod
    def blank_category(cls, value):
        return _blank_to_none(value)

    @field_validator("total", "available", mode="before")
    @classmethod
    def blank_count(cls, value):
        return 0 if value is None or (isinstance(value, str) and not value.strip()) else value


class BookCopy(Record):
    copy_id: str
    book_id: str
    status: CopyStatus = CopyStatus.AVAILABLE
    location: str = "main"
    condition: str = "good"

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        # Legacy rows carry "Available" / "Borrowed"
        if isinstance(value, str):
            return value.strip().lower() or CopyStatus.AVAILABLE.value
        return value

    @property
    def is_available(self) -> bool:
        return self.status == CopyStatus.AVAILABLE


class Transaction(Record):
    transaction_id: str
    user_id: str
    copy_id: str
    borrow_date: date
    due_date: date
    return_date: Optional[date] = None

    @field_validator("return_date", mode="before")
    @classmethod
    def blank_return_date(cls, value):
        return _blank_to_none(value)

    @property
    def is_open(self) -> bool:
        return self.return_date is None


class Fine(Record):
    fine_id: str
    user_id: str
    transaction_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    due_date: Optional[date] = None
    payment_date: Optional[date] = None
    fine_reason: str = ""

    @field_validator("transaction_id", "due_date", "payment_date", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return _blank_to_none(value)

    @property
    def is_paid(self) -> bool:
        return self.payment_date is not None


class Member(Record):
    user_id: str
    name: str
    email: str = ""
    password_hash: str = ""
    role: str = "member"
    membership_date: Optional[date] = None

    @field_validator("membership_date", mode="before")
    @classmethod
    def blank_membership_date(cls, value):
        return _blank_to_none(value)


class Staff(Record):
    staff_id: str
    staff_name: str = ""
    email: str = ""
    role: str = ""
    department: str = ""


class OverdueEntry(BaseModel):
    transaction_id: str
    user_id: str
    copy_id: str
    book_id: Optional[str] = None
    borrow_date: date
    due_date: date


class ReturnResult(BaseModel):
    transaction: Transaction
    fine: Optional[Fine] = None
