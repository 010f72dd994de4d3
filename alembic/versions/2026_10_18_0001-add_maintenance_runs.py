"""add maintenance runs

Revision ID: 2026_10_18_0001
Revises: 2026_10_18_0000
Create Date: 2026-10-18 00:01:00.000000

Persists the last date each recurring maintenance task ran, so the daily
usage reset fires once per day even across restarts or overlapping ticks.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "2026_10_18_0001"
down_revision: str | None = "2026_10_18_0000"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "maintenance_runs",
        sa.Column("task", sa.String(64), primary_key=True),
        sa.Column("last_run_on", sa.Date(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )


def downgrade() -> None:
    op.drop_table("maintenance_runs")
