"""Category model grouping transactions, budgets and savings accounts."""

from enum import Enum

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from spendee.constants import DEFAULT_CATEGORY_ICON
from spendee.models.base import TimestampMixin, generate_nanoid


class CategoryType(str, Enum):
    """Whether money in a category flows out or in."""

    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class Category(TimestampMixin, SQLModel, table=True):
    """User-defined spending or income category."""

    __tablename__ = "categories"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    name: str = Field(max_length=255)
    description: str | None = Field(default=None)
    type: CategoryType = Field(default=CategoryType.EXPENSE)
    icon: str = Field(default=DEFAULT_CATEGORY_ICON, max_length=100)


class CategoryCreate(SQLModel):
    """Schema for creating a category."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    type: CategoryType = CategoryType.EXPENSE
    icon: str = Field(default=DEFAULT_CATEGORY_ICON, min_length=1, max_length=100)

    @field_validator("description", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v == "":
            return None
        return v


class CategoryUpdate(SQLModel):
    """Schema for updating a category."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    type: CategoryType | None = None
    icon: str | None = Field(default=None, min_length=1, max_length=100)


class CategorySummary(SQLModel):
    """Compact category embedded in transaction, budget and savings responses."""

    id: str
    name: str
    type: CategoryType
    icon: str


class CategoryRead(SQLModel):
    """Schema for reading a category along with its aggregate stats."""

    id: str
    name: str
    description: str | None
    type: CategoryType
    icon: str
    transaction_count: int = 0
    savings_count: int = 0
    budget_name: str | None = None
    budget_amount: float | None = None
    # Expense categories report spent, income categories report balance
    spent: float | None = None
    balance: float | None = None
    average_growth: float = 0.0


class CategoryBulkDelete(SQLModel):
    """Body for deleting several categories at once."""

    ids: list[str] = Field(min_length=1)
