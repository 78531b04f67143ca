"""initial_schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-18 09:00:00.000000

Users, email tokens and the finance tables.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

category_type = sa.Enum("EXPENSE", "INCOME", name="categorytype")
transaction_type = sa.Enum("INCOME", "EXPENSE", name="transactiontype")
account_type = sa.Enum("SAVINGS", "INVESTMENT", name="accounttype")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _owned() -> list[sa.Column]:
    """id, owner and category columns shared by the finance tables."""
    return [
        sa.Column("id", sa.String(length=21), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=21),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "category_id",
            sa.String(length=21),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=21), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("image", sa.String(length=2048), nullable=True),
        sa.Column("password", sa.String(length=255), nullable=True),
        sa.Column("email_verified", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    for table in ("verification_tokens", "password_reset_tokens"):
        op.create_table(
            table,
            sa.Column("token", sa.String(length=255), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(length=21),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=21), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=21),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("type", category_type, nullable=False),
        sa.Column("icon", sa.String(length=100), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "transactions",
        *_owned(),
        sa.Column("description", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("occurred_on", sa.Date(), nullable=False, index=True),
        sa.Column("type", transaction_type, nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "budgets",
        *_owned(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("month", sa.String(length=7), nullable=False, index=True),
        *_timestamps(),
    )

    op.create_table(
        "savings",
        *_owned(),
        sa.Column("account_name", sa.String(length=255), nullable=False),
        sa.Column("balance", sa.Float(), nullable=False),
        sa.Column("initial_balance", sa.Float(), nullable=False),
        sa.Column("interest_rate", sa.Float(), nullable=False),
        sa.Column("account_type", account_type, nullable=False),
        sa.Column("institution", sa.String(length=255), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("savings")
    op.drop_table("budgets")
    op.drop_table("transactions")
    op.drop_table("categories")
    op.drop_index("ix_password_reset_tokens_user_id", table_name="password_reset_tokens")
    op.drop_table("password_reset_tokens")
    op.drop_index("ix_verification_tokens_user_id", table_name="verification_tokens")
    op.drop_table("verification_tokens")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    for enum in (account_type, transaction_type, category_type):
        enum.drop(op.get_bind(), checkfirst=True)
