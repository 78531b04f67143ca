"""Savings and investment account model."""

from enum import Enum

from sqlmodel import Field, SQLModel

from spendee.models.base import TimestampMixin, generate_nanoid
from spendee.models.category import CategorySummary


class AccountType(str, Enum):
    """Kind of savings account."""

    SAVINGS = "SAVINGS"
    INVESTMENT = "INVESTMENT"


class Savings(TimestampMixin, SQLModel, table=True):
    """A savings or investment account tracked by balance."""

    __tablename__ = "savings"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    category_id: str = Field(
        foreign_key="categories.id", index=True, ondelete="CASCADE", max_length=21
    )
    account_name: str = Field(max_length=255)
    balance: float = Field(default=0.0)
    initial_balance: float = Field(default=0.0)
    interest_rate: float = Field(default=0.0)
    account_type: AccountType = Field(default=AccountType.SAVINGS)
    institution: str | None = Field(default=None, max_length=255)


class SavingsCreate(SQLModel):
    """Schema for opening an account. The balance starts at the initial balance."""

    account_name: str = Field(min_length=1, max_length=255)
    category_id: str = Field(min_length=1)
    initial_balance: float = Field(ge=0)
    interest_rate: float = Field(ge=0)
    account_type: AccountType = AccountType.SAVINGS
    institution: str | None = None


class SavingsUpdate(SQLModel):
    """Schema for editing an account. The initial balance is fixed at creation."""

    account_name: str | None = Field(default=None, min_length=1, max_length=255)
    category_id: str | None = Field(default=None, min_length=1)
    balance: float | None = Field(default=None, ge=0)
    interest_rate: float | None = Field(default=None, ge=0)
    account_type: AccountType | None = None
    institution: str | None = None


class SavingsRead(SQLModel):
    """Schema for reading an account."""

    id: str
    account_name: str
    category_id: str
    balance: float
    initial_balance: float
    interest_rate: float
    account_type: AccountType
    institution: str | None
    growth: float = 0.0
    category: CategorySummary | None = None


def savings_growth(initial_balance: float, balance: float) -> float:
    """Percentage change from the opening balance."""
    if initial_balance <= 0:
        return 0.0
    return (balance - initial_balance) / initial_balance * 100
