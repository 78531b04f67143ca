"""Monthly category budget model."""

import re
from enum import Enum

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from spendee.constants import DEFAULT_BUDGET_NAME, MONTH_PATTERN
from spendee.models.base import TimestampMixin, generate_nanoid
from spendee.models.category import CategorySummary


def validate_month(value: str | None) -> str | None:
    """Check a YYYY-MM month string."""
    if value is not None and not re.match(MONTH_PATTERN, value):
        raise ValueError("Invalid month format (YYYY-MM)")
    return value


class BudgetStatus(str, Enum):
    """How close spending is to the budgeted amount."""

    GOOD = "good"
    WARNING = "warning"
    COMPLETED = "completed"
    DANGER = "danger"


class Budget(TimestampMixin, SQLModel, table=True):
    """Spending limit for one category in one month."""

    __tablename__ = "budgets"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    category_id: str = Field(
        foreign_key="categories.id", index=True, ondelete="CASCADE", max_length=21
    )
    name: str = Field(default=DEFAULT_BUDGET_NAME, max_length=255)
    amount: float
    description: str | None = Field(default=None)
    month: str = Field(max_length=7, index=True, description="YYYY-MM")


class BudgetCreate(SQLModel):
    """Schema for creating a budget. Month defaults to the current month."""

    name: str = Field(default=DEFAULT_BUDGET_NAME, min_length=1, max_length=255)
    category_id: str = Field(min_length=1)
    amount: float = Field(ge=0.01)
    description: str | None = None
    month: str | None = None

    @field_validator("month")
    @classmethod
    def check_month(cls, v: str | None) -> str | None:
        return validate_month(v)


class BudgetUpdate(SQLModel):
    """Schema for updating a budget. The stored month is kept unless given."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    category_id: str | None = Field(default=None, min_length=1)
    amount: float | None = Field(default=None, ge=0.01)
    description: str | None = None
    month: str | None = None

    @field_validator("month")
    @classmethod
    def check_month(cls, v: str | None) -> str | None:
        return validate_month(v)


class BudgetRead(SQLModel):
    """Schema for reading a budget with its spending stats."""

    id: str
    name: str
    category_id: str
    amount: float
    description: str | None
    month: str
    spent: float = 0.0
    remaining: float = 0.0
    progress: float = 0.0
    status: BudgetStatus = BudgetStatus.GOOD
    category: CategorySummary | None = None
