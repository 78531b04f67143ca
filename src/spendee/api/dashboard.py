"""Dashboard endpoint."""

from fastapi import APIRouter, Query

from spendee.api.deps import CurrentUser, SessionDep
from spendee.constants import MONTH_PATTERN
from spendee.services.dashboard import DashboardSummary, build_dashboard

router = APIRouter()


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    session: SessionDep,
    user: CurrentUser,
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
):
    """Income, spending, savings and budget totals for a month (default: current)."""
    return await build_dashboard(session, user.id, month)
