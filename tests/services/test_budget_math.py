"""Budget and month helper tests."""

from datetime import UTC, date, datetime

import pytest

from spendee.models import BudgetStatus
from spendee.models.savings import savings_growth
from spendee.services.finance import budget_status, current_month, month_bounds


@pytest.mark.parametrize(
    ("progress", "expected"),
    [
        (0, BudgetStatus.GOOD),
        (89.9, BudgetStatus.GOOD),
        # 90 to 95 inclusive falls through to good
        (90, BudgetStatus.GOOD),
        (95, BudgetStatus.GOOD),
        (95.1, BudgetStatus.WARNING),
        (99.99, BudgetStatus.WARNING),
        (100, BudgetStatus.COMPLETED),
        (100.01, BudgetStatus.DANGER),
        (250, BudgetStatus.DANGER),
    ],
)
def test_budget_status(progress, expected):
    assert budget_status(progress) is expected


def test_month_bounds():
    assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 3, 1))
    assert month_bounds("2024-12") == (date(2024, 12, 1), date(2025, 1, 1))


def test_current_month():
    assert current_month(datetime(2025, 7, 31, 23, 59, tzinfo=UTC)) == "2025-07"


def test_savings_growth():
    assert savings_growth(200, 250) == pytest.approx(25)
    assert savings_growth(200, 150) == pytest.approx(-25)
    assert savings_growth(0, 100) == 0.0
