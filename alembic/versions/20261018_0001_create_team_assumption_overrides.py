"""create team_assumption_overrides table

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "team_assumption_overrides",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", sa.String(length=64), nullable=False),
        sa.Column("constant_name", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("source_label", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "team_id",
            "constant_name",
            name="uq_team_assumption_overrides_team_constant",
        ),
    )
    op.create_index(
        "ix_team_assumption_overrides_team_id",
        "team_assumption_overrides",
        ["team_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_team_assumption_overrides_team_id", table_name="team_assumption_overrides")
    op.drop_table("team_assumption_overrides")
