"""Transaction CRUD endpoints."""

from fastapi import APIRouter, Query, status
from sqlmodel import select

from spendee.api.deps import CurrentUser, SessionDep
from spendee.api.utils import get_owned
from spendee.constants import MONTH_PATTERN
from spendee.errors import ValidationError
from spendee.models import Category, Transaction, TransactionType
from spendee.models.transaction import TransactionCreate, TransactionRead, TransactionUpdate
from spendee.services.finance import category_summary, month_bounds

router = APIRouter()


def _check_type(tx_type: TransactionType, category: Category) -> None:
    if tx_type.value != category.type.value:
        raise ValidationError(
            f"Transaction type must match category type ({category.type.value})"
        )


def _read(transaction: Transaction, category: Category | None) -> TransactionRead:
    return TransactionRead(
        id=transaction.id,
        description=transaction.description,
        amount=transaction.amount,
        occurred_on=transaction.occurred_on,
        category_id=transaction.category_id,
        type=transaction.type,
        notes=transaction.notes,
        category=category_summary(category),
    )


@router.get("", response_model=list[TransactionRead])
async def list_transactions(
    session: SessionDep,
    user: CurrentUser,
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    tx_type: TransactionType | None = Query(default=None, alias="type"),
    category_id: str | None = None,
):
    """List the user's transactions, newest first."""
    stmt = (
        select(Transaction, Category)
        .join(Category, Transaction.category_id == Category.id)  # type: ignore[arg-type]
        .where(Transaction.user_id == user.id)
    )
    if month:
        start, end = month_bounds(month)
        stmt = stmt.where(
            Transaction.occurred_on >= start,  # type: ignore[operator]
            Transaction.occurred_on < end,  # type: ignore[operator]
        )
    if tx_type:
        stmt = stmt.where(Transaction.type == tx_type)
    if category_id:
        stmt = stmt.where(Transaction.category_id == category_id)

    stmt = stmt.order_by(
        Transaction.occurred_on.desc(),  # type: ignore[attr-defined]
        Transaction.created_at.desc(),  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return [_read(transaction, category) for transaction, category in result.all()]


@router.get("/{transaction_id}", response_model=TransactionRead)
async def get_transaction(transaction_id: str, session: SessionDep, user: CurrentUser):
    """Get one transaction."""
    transaction = await get_owned(session, Transaction, transaction_id, user.id, "Transaction")
    category = await session.get(Category, transaction.category_id)
    return _read(transaction, category)


@router.post("", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_in: TransactionCreate, session: SessionDep, user: CurrentUser
):
    """Record a transaction in one of the user's categories."""
    category = await get_owned(session, Category, transaction_in.category_id, user.id, "Category")
    _check_type(transaction_in.type, category)

    transaction = Transaction(user_id=user.id, **transaction_in.model_dump())
    session.add(transaction)
    await session.commit()

    return _read(transaction, category)


@router.patch("/{transaction_id}", response_model=TransactionRead)
async def update_transaction(
    transaction_id: str,
    transaction_in: TransactionUpdate,
    session: SessionDep,
    user: CurrentUser,
):
    """Update a transaction. The resulting type must still match its category."""
    transaction = await get_owned(session, Transaction, transaction_id, user.id, "Transaction")
    # notes is the only nullable field
    update_data = {
        field: value
        for field, value in transaction_in.model_dump(exclude_unset=True).items()
        if value is not None or field == "notes"
    }

    category_id = update_data.get("category_id") or transaction.category_id
    category = await get_owned(session, Category, category_id, user.id, "Category")
    _check_type(update_data.get("type") or transaction.type, category)

    for field, value in update_data.items():
        setattr(transaction, field, value)

    session.add(transaction)
    await session.commit()

    return _read(transaction, category)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(transaction_id: str, session: SessionDep, user: CurrentUser):
    """Delete a transaction."""
    transaction = await get_owned(session, Transaction, transaction_id, user.id, "Transaction")
    await session.delete(transaction)
    await session.commit()
