"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from spendee.api import auth, budgets, categories, dashboard, health, savings, transactions

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])

# Registration and emailed links live at the top level, sessions under /auth
api_router.include_router(auth.account_router, tags=["auth"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(budgets.router, prefix="/budgets", tags=["budgets"])
api_router.include_router(savings.router, prefix="/savings", tags=["savings"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
