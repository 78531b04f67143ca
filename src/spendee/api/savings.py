"""Savings account CRUD endpoints."""

from fastapi import APIRouter, status
from sqlmodel import select

from spendee.api.deps import CurrentUser, SessionDep
from spendee.api.utils import get_owned
from spendee.models import Category, Savings
from spendee.models.savings import SavingsCreate, SavingsRead, SavingsUpdate, savings_growth
from spendee.services.finance import category_summary

router = APIRouter()


def _read(account: Savings, category: Category | None) -> SavingsRead:
    return SavingsRead(
        id=account.id,
        account_name=account.account_name,
        category_id=account.category_id,
        balance=account.balance,
        initial_balance=account.initial_balance,
        interest_rate=account.interest_rate,
        account_type=account.account_type,
        institution=account.institution,
        growth=savings_growth(account.initial_balance, account.balance),
        category=category_summary(category),
    )


@router.get("", response_model=list[SavingsRead])
async def list_savings(session: SessionDep, user: CurrentUser):
    """List the user's savings accounts by name."""
    stmt = (
        select(Savings, Category)
        .join(Category, Savings.category_id == Category.id)  # type: ignore[arg-type]
        .where(Savings.user_id == user.id)
        .order_by(Savings.account_name)
    )
    result = await session.execute(stmt)
    return [_read(account, category) for account, category in result.all()]


@router.post("", response_model=SavingsRead, status_code=status.HTTP_201_CREATED)
async def create_savings(savings_in: SavingsCreate, session: SessionDep, user: CurrentUser):
    """Open a savings account. Its balance starts at the initial balance."""
    category = await get_owned(session, Category, savings_in.category_id, user.id, "Category")

    account = Savings(
        user_id=user.id,
        balance=savings_in.initial_balance,
        **savings_in.model_dump(),
    )
    session.add(account)
    await session.commit()

    return _read(account, category)


@router.patch("/{savings_id}", response_model=SavingsRead)
async def update_savings(
    savings_id: str, savings_in: SavingsUpdate, session: SessionDep, user: CurrentUser
):
    """Update a savings account."""
    account = await get_owned(session, Savings, savings_id, user.id, "Savings account")
    update_data = savings_in.model_dump(exclude_unset=True)

    category_id = update_data.get("category_id") or account.category_id
    category = await get_owned(session, Category, category_id, user.id, "Category")

    for field, value in update_data.items():
        if value is None and field != "institution":
            continue
        setattr(account, field, value)

    session.add(account)
    await session.commit()

    return _read(account, category)


@router.delete("/{savings_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_savings(savings_id: str, session: SessionDep, user: CurrentUser):
    """Delete a savings account."""
    account = await get_owned(session, Savings, savings_id, user.id, "Savings account")
    await session.delete(account)
    await session.commit()
