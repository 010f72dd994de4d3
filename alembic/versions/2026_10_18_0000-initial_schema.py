"""initial schema

Revision ID: 2026_10_18_0000
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the users ledger table:
- credits: balance, starts at 50, never negative
- daily_used: free-tier usage since the last daily reset
- referred_by: account that referred this one (set once at creation)
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "2026_10_18_0000"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create initial database schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("daily_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("referred_by", sa.BigInteger(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
        sa.CheckConstraint("daily_used >= 0", name="ck_users_daily_used_non_negative"),
        sa.CheckConstraint(
            "referred_by IS NULL OR referred_by <> id", name="ck_users_no_self_referral"
        ),
    )

    op.create_index(
        "idx_users_referred_by",
        "users",
        ["referred_by"],
        postgresql_where=sa.text("referred_by IS NOT NULL"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_users_referred_by", table_name="users")
    op.drop_table("users")
