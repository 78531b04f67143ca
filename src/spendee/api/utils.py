"""Shared API utilities."""

from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from spendee.errors import NotFoundError

ModelT = TypeVar("ModelT", bound=SQLModel)


async def get_owned(
    session: AsyncSession,
    model: type[ModelT],
    record_id: str,
    user_id: str,
    label: str,
) -> ModelT:
    """Get a record by ID that belongs to ``user_id``.

    Args:
        session: Database session
        model: Table model with ``id`` and ``user_id`` columns
        record_id: Primary key
        user_id: Owner the record must belong to
        label: Entity name used in the error message

    Raises:
        NotFoundError: 404 if the record is missing or owned by someone else
    """
    stmt = select(model).where(
        model.id == record_id,  # type: ignore[attr-defined]
        model.user_id == user_id,  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    record = result.scalar_one_or_none()

    if not record:
        raise NotFoundError(f"{label} not found")

    return record
