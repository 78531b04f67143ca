"""Transaction model."""

from datetime import date
from enum import Enum

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from spendee.models.base import TimestampMixin, generate_nanoid
from spendee.models.category import CategorySummary


class TransactionType(str, Enum):
    """Direction of a transaction. Must agree with its category's type."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Transaction(TimestampMixin, SQLModel, table=True):
    """A single income or expense entry."""

    __tablename__ = "transactions"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    category_id: str = Field(
        foreign_key="categories.id", index=True, ondelete="CASCADE", max_length=21
    )
    description: str = Field(max_length=100)
    amount: float
    occurred_on: date = Field(index=True)
    type: TransactionType
    notes: str | None = Field(default=None, max_length=500)


class TransactionCreate(SQLModel):
    """Schema for creating a transaction."""

    description: str = Field(min_length=1, max_length=100)
    amount: float = Field(gt=0)
    occurred_on: date
    category_id: str = Field(min_length=1)
    type: TransactionType
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v == "":
            return None
        return v


class TransactionUpdate(SQLModel):
    """Schema for updating a transaction."""

    description: str | None = Field(default=None, min_length=1, max_length=100)
    amount: float | None = Field(default=None, gt=0)
    occurred_on: date | None = None
    category_id: str | None = Field(default=None, min_length=1)
    type: TransactionType | None = None
    notes: str | None = Field(default=None, max_length=500)


class TransactionRead(SQLModel):
    """Schema for reading a transaction."""

    id: str
    description: str
    amount: float
    occurred_on: date
    category_id: str
    type: TransactionType
    notes: str | None
    category: CategorySummary | None = None
