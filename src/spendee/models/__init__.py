"""SQLModel database models."""

from spendee.models.account import Account, OAuthState
from spendee.models.base import TimestampMixin, as_utc, generate_nanoid, utcnow
from spendee.models.budget import Budget, BudgetStatus
from spendee.models.category import Category, CategoryType
from spendee.models.savings import AccountType, Savings
from spendee.models.transaction import Transaction, TransactionType
from spendee.models.user import User
from spendee.models.verification_token import PasswordResetToken, VerificationToken

__all__ = [
    "Account",
    "AccountType",
    "Budget",
    "BudgetStatus",
    "Category",
    "CategoryType",
    "OAuthState",
    "PasswordResetToken",
    "Savings",
    "TimestampMixin",
    "Transaction",
    "TransactionType",
    "User",
    "VerificationToken",
    "as_utc",
    "generate_nanoid",
    "utcnow",
]
