"""Budget CRUD endpoints."""

from fastapi import APIRouter, status

from spendee.api.deps import CurrentUser, SessionDep
from spendee.api.utils import get_owned
from spendee.models import Budget, Category
from spendee.models.budget import BudgetCreate, BudgetRead, BudgetUpdate
from spendee.services.finance import build_budget_read, current_month, list_budget_reads

router = APIRouter()


@router.get("", response_model=list[BudgetRead])
async def list_budgets(session: SessionDep, user: CurrentUser):
    """List the user's budgets with spending progress."""
    return await list_budget_reads(session, user.id)


@router.get("/{budget_id}", response_model=BudgetRead)
async def get_budget(budget_id: str, session: SessionDep, user: CurrentUser):
    """Get one budget with spending progress."""
    budget = await get_owned(session, Budget, budget_id, user.id, "Budget")
    return await build_budget_read(session, budget)


@router.post("", response_model=BudgetRead, status_code=status.HTTP_201_CREATED)
async def create_budget(budget_in: BudgetCreate, session: SessionDep, user: CurrentUser):
    """Create a budget for one of the user's categories."""
    category = await get_owned(session, Category, budget_in.category_id, user.id, "Category")

    budget = Budget(
        user_id=user.id,
        category_id=category.id,
        name=budget_in.name,
        amount=budget_in.amount,
        description=budget_in.description,
        month=budget_in.month or current_month(),
    )
    session.add(budget)
    await session.commit()

    return await build_budget_read(session, budget, category)


@router.patch("/{budget_id}", response_model=BudgetRead)
async def update_budget(
    budget_id: str, budget_in: BudgetUpdate, session: SessionDep, user: CurrentUser
):
    """Update a budget. The month is kept unless a new one is given."""
    budget = await get_owned(session, Budget, budget_id, user.id, "Budget")
    update_data = budget_in.model_dump(exclude_unset=True)

    category = None
    if update_data.get("category_id"):
        category = await get_owned(session, Category, update_data["category_id"], user.id, "Category")

    for field, value in update_data.items():
        if value is None and field != "description":
            continue
        setattr(budget, field, value)

    session.add(budget)
    await session.commit()

    return await build_budget_read(session, budget, category)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget(budget_id: str, session: SessionDep, user: CurrentUser):
    """Delete a budget."""
    budget = await get_owned(session, Budget, budget_id, user.id, "Budget")
    await session.delete(budget)
    await session.commit()
