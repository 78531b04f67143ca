"""Monthly spending summary for the dashboard."""

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.models import BudgetStatus, Category, Savings, Transaction, TransactionType
from spendee.services.finance import current_month, list_budget_reads, month_bounds


class CategorySpending(BaseModel):
    """Expense total for one category."""

    category_id: str
    name: str
    icon: str
    amount: float


class DashboardSummary(BaseModel):
    """Totals for one month."""

    month: str
    income: float
    expenses: float
    net: float
    transaction_count: int
    spending_by_category: list[CategorySpending]
    savings_total: float
    budget_status: dict[str, int]


async def build_dashboard(
    session: AsyncSession, user_id: str, month: str | None = None
) -> DashboardSummary:
    """Summarize a user's income, spending, savings and budgets for ``month``."""
    month = month or current_month()
    start, end = month_bounds(month)
    in_month = (
        Transaction.user_id == user_id,
        Transaction.occurred_on >= start,  # type: ignore[operator]
        Transaction.occurred_on < end,  # type: ignore[operator]
    )

    totals = (
        await session.execute(
            select(
                Transaction.type,
                func.count(Transaction.id),  # type: ignore[arg-type]
                func.coalesce(func.sum(func.abs(Transaction.amount)), 0.0),
            )
            .where(*in_month)
            .group_by(Transaction.type)
        )
    ).all()
    income = expenses = 0.0
    transaction_count = 0
    for tx_type, count, amount in totals:
        transaction_count += int(count)
        if tx_type == TransactionType.INCOME:
            income = float(amount)
        else:
            expenses = float(amount)

    spent_expr = func.sum(func.abs(Transaction.amount))
    by_category = (
        await session.execute(
            select(Category.id, Category.name, Category.icon, spent_expr)
            .join(Transaction, Transaction.category_id == Category.id)  # type: ignore[arg-type]
            .where(*in_month, Transaction.type == TransactionType.EXPENSE)
            .group_by(Category.id, Category.name, Category.icon)
            .order_by(spent_expr.desc())
        )
    ).all()

    savings_total = (
        await session.execute(
            select(func.coalesce(func.sum(Savings.balance), 0.0)).where(Savings.user_id == user_id)
        )
    ).scalar()

    status_counts = {status.value: 0 for status in BudgetStatus}
    for budget in await list_budget_reads(session, user_id):
        if budget.month == month:
            status_counts[budget.status.value] += 1

    return DashboardSummary(
        month=month,
        income=income,
        expenses=expenses,
        net=income - expenses,
        transaction_count=transaction_count,
        spending_by_category=[
            CategorySpending(category_id=cid, name=name, icon=icon, amount=float(amount))
            for cid, name, icon, amount in by_category
        ],
        savings_total=float(savings_total or 0.0),
        budget_status=status_counts,
    )
