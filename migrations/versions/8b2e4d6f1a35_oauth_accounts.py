"""oauth_accounts

Revision ID: 8b2e4d6f1a35
Revises: 3f1c9a7d2b10
Create Date: 2026-10-18 15:00:00.000000

Provider accounts for GitHub/Google sign-in and the pending OAuth states.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "8b2e4d6f1a35"
down_revision: str | None = "3f1c9a7d2b10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=21), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=21),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("provider_account_id", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "provider", "provider_account_id", name="uq_accounts_provider_account"
        ),
    )
    op.create_index("ix_accounts_user_id", "accounts", ["user_id"])

    op.create_table(
        "oauth_states",
        sa.Column("state", sa.String(length=255), primary_key=True),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("oauth_states")
    op.drop_index("ix_accounts_user_id", table_name="accounts")
    op.drop_table("accounts")
