"""Budget and category statistics derived from a user's transactions."""

from collections import defaultdict
from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.constants import BUDGET_GOOD_BELOW, BUDGET_LIMIT, BUDGET_WARNING_ABOVE
from spendee.models import (
    Budget,
    BudgetStatus,
    Category,
    CategoryType,
    Savings,
    Transaction,
    utcnow,
)
from spendee.models.budget import BudgetRead
from spendee.models.category import CategoryRead, CategorySummary
from spendee.models.savings import savings_growth


def current_month(now: datetime | None = None) -> str:
    """The month containing ``now`` as YYYY-MM."""
    return (now or utcnow()).strftime("%Y-%m")


def month_bounds(month: str) -> tuple[date, date]:
    """First day of ``month`` and first day of the following month."""
    year, mon = (int(part) for part in month.split("-"))
    start = date(year, mon, 1)
    end = date(year + 1, 1, 1) if mon == 12 else date(year, mon + 1, 1)
    return start, end


def budget_status(progress: float) -> BudgetStatus:
    """Classify budget progress (percent of the budgeted amount spent).

    Between 90% and 95% inclusive still counts as good.
    """
    if progress < BUDGET_GOOD_BELOW:
        return BudgetStatus.GOOD
    if BUDGET_WARNING_ABOVE < progress < BUDGET_LIMIT:
        return BudgetStatus.WARNING
    if progress == BUDGET_LIMIT:
        return BudgetStatus.COMPLETED
    if progress > BUDGET_LIMIT:
        return BudgetStatus.DANGER
    return BudgetStatus.GOOD


def category_summary(category: Category | None) -> CategorySummary | None:
    if category is None:
        return None
    return CategorySummary(
        id=category.id, name=category.name, type=category.type, icon=category.icon
    )


async def category_spent(
    session: AsyncSession, user_id: str, category_id: str, month: str
) -> float:
    """Total absolute transaction amount in a category during ``month``."""
    start, end = month_bounds(month)
    stmt = select(func.coalesce(func.sum(func.abs(Transaction.amount)), 0.0)).where(
        Transaction.user_id == user_id,
        Transaction.category_id == category_id,
        Transaction.occurred_on >= start,  # type: ignore[operator]
        Transaction.occurred_on < end,  # type: ignore[operator]
    )
    result = await session.execute(stmt)
    return float(result.scalar() or 0.0)


async def build_budget_read(
    session: AsyncSession, budget: Budget, category: Category | None = None
) -> BudgetRead:
    """Attach spent, remaining, progress and status to a budget."""
    if category is None:
        category = await session.get(Category, budget.category_id)

    spent = await category_spent(session, budget.user_id, budget.category_id, budget.month)
    progress = spent / budget.amount * 100 if budget.amount > 0 else 0.0

    return BudgetRead(
        id=budget.id,
        name=budget.name,
        category_id=budget.category_id,
        amount=budget.amount,
        description=budget.description,
        month=budget.month,
        spent=spent,
        remaining=budget.amount - spent,
        progress=progress,
        status=budget_status(progress),
        category=category_summary(category),
    )


async def list_budget_reads(session: AsyncSession, user_id: str) -> list[BudgetRead]:
    """All of a user's budgets with stats, newest first."""
    stmt = (
        select(Budget, Category)
        .join(Category, Budget.category_id == Category.id)  # type: ignore[arg-type]
        .where(Budget.user_id == user_id)
        .order_by(Budget.created_at.desc())  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return [await build_budget_read(session, budget, category) for budget, category in result.all()]


async def list_category_reads(
    session: AsyncSession, user_id: str, month: str | None = None
) -> list[CategoryRead]:
    """A user's categories with transaction, budget and savings stats.

    ``spent`` and ``balance`` cover every transaction in the category; the budget
    columns describe the budget for ``month`` (default: the current month).
    """
    month = month or current_month()

    categories = (
        await session.execute(
            select(Category).where(Category.user_id == user_id).order_by(Category.name)
        )
    ).scalars().all()

    tx_rows = (
        await session.execute(
            select(
                Transaction.category_id,
                func.count(Transaction.id),  # type: ignore[arg-type]
                func.coalesce(func.sum(func.abs(Transaction.amount)), 0.0),
                func.coalesce(func.sum(Transaction.amount), 0.0),
            )
            .where(Transaction.user_id == user_id)
            .group_by(Transaction.category_id)
        )
    ).all()
    tx_stats = {row[0]: (int(row[1]), float(row[2]), float(row[3])) for row in tx_rows}

    budgets = (
        await session.execute(
            select(Budget).where(Budget.user_id == user_id, Budget.month == month)
        )
    ).scalars().all()
    budget_by_category = {b.category_id: b for b in budgets}

    savings = (
        await session.execute(select(Savings).where(Savings.user_id == user_id))
    ).scalars().all()
    growth_by_category: dict[str, list[float]] = defaultdict(list)
    for account in savings:
        growth_by_category[account.category_id].append(
            savings_growth(account.initial_balance, account.balance)
        )

    reads = []
    for category in categories:
        count, spent, total = tx_stats.get(category.id, (0, 0.0, 0.0))
        budget = budget_by_category.get(category.id)
        growths = growth_by_category.get(category.id, [])
        is_expense = category.type == CategoryType.EXPENSE

        reads.append(
            CategoryRead(
                id=category.id,
                name=category.name,
                description=category.description,
                type=category.type,
                icon=category.icon,
                transaction_count=count,
                savings_count=len(growths),
                budget_name=budget.name if budget else None,
                budget_amount=budget.amount if budget else None,
                spent=spent if is_expense else None,
                balance=None if is_expense else total,
                average_growth=sum(growths) / len(growths) if growths else 0.0,
            )
        )
    return reads
