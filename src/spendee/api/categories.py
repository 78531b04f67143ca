"""Category CRUD endpoints."""

import logging

from fastapi import APIRouter, status
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.api.deps import CurrentUser, SessionDep
from spendee.api.utils import get_owned
from spendee.errors import ValidationError
from spendee.models import Budget, Category, Savings, Transaction
from spendee.models.category import (
    CategoryBulkDelete,
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
)
from spendee.schemas import SuccessResponse
from spendee.services.finance import list_category_reads

logger = logging.getLogger(__name__)

router = APIRouter()


async def _delete_categories(session: AsyncSession, user_id: str, ids: list[str]) -> None:
    """Delete categories together with everything filed under them."""
    for model in (Transaction, Budget, Savings):
        await session.execute(
            delete(model).where(
                model.user_id == user_id,  # type: ignore[arg-type]
                model.category_id.in_(ids),  # type: ignore[attr-defined]
            )
        )
    await session.execute(
        delete(Category).where(
            Category.user_id == user_id,  # type: ignore[arg-type]
            Category.id.in_(ids),  # type: ignore[attr-defined]
        )
    )


async def _category_read(session: AsyncSession, user_id: str, category_id: str) -> CategoryRead:
    reads = await list_category_reads(session, user_id)
    return next(read for read in reads if read.id == category_id)


@router.get("", response_model=list[CategoryRead])
async def list_categories(session: SessionDep, user: CurrentUser, month: str | None = None):
    """List the user's categories with their stats."""
    return await list_category_reads(session, user.id, month)


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(category_in: CategoryCreate, session: SessionDep, user: CurrentUser):
    """Create a category."""
    category = Category(user_id=user.id, **category_in.model_dump())
    session.add(category)
    await session.commit()

    return await _category_read(session, user.id, category.id)


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: str, category_in: CategoryUpdate, session: SessionDep, user: CurrentUser
):
    """Update a category."""
    category = await get_owned(session, Category, category_id, user.id, "Category")

    for field, value in category_in.model_dump(exclude_unset=True).items():
        if value is None and field != "description":
            continue
        setattr(category, field, value)

    session.add(category)
    await session.commit()

    return await _category_read(session, user.id, category.id)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: str, session: SessionDep, user: CurrentUser):
    """Delete a category and its transactions, budgets and savings accounts."""
    await get_owned(session, Category, category_id, user.id, "Category")
    await _delete_categories(session, user.id, [category_id])
    await session.commit()


@router.post("/bulk-delete", response_model=SuccessResponse)
async def bulk_delete_categories(body: CategoryBulkDelete, session: SessionDep, user: CurrentUser):
    """Delete several categories. Nothing is deleted unless every id is the user's."""
    ids = list(set(body.ids))
    stmt = select(Category.id).where(
        Category.user_id == user.id,
        Category.id.in_(ids),  # type: ignore[attr-defined]
    )
    owned = (await session.execute(stmt)).scalars().all()
    if len(owned) != len(ids):
        raise ValidationError("Some categories not found")

    await _delete_categories(session, user.id, ids)
    await session.commit()

    logger.info(f"Deleted {len(ids)} categories for user {user.id}")
    return SuccessResponse()
