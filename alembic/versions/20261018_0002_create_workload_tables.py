"""create workload_datasets, workload_records, dataset_metrics tables

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 09:25:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "workload_datasets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", sa.String(length=64), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("source_type", sa.String(length=50), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("column_mappings", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("mapping_confidence", sa.Float(), nullable=False),
        sa.Column("assumption_source", sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workload_datasets_team_id", "workload_datasets", ["team_id"], unique=False)
    op.create_index("ix_workload_datasets_source_type", "workload_datasets", ["source_type"], unique=False)

    op.create_table(
        "workload_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("region", sa.String(length=100), nullable=False),
        sa.Column("instance_type", sa.String(length=100), nullable=True),
        sa.Column("vcpus", sa.Float(), nullable=True),
        sa.Column("memory_gb", sa.Float(), nullable=True),
        sa.Column("runtime_hours", sa.Float(), nullable=True),
        sa.Column("avg_cpu_utilization", sa.Float(), nullable=True),
        sa.Column("avg_memory_utilization", sa.Float(), nullable=True),
        sa.Column("total_energy_kwh", sa.Float(), nullable=False),
        sa.Column("total_carbon_kg", sa.Float(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("detection_method", sa.String(length=50), nullable=False),
        sa.Column("detection_confidence", sa.Float(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dataset_id"], ["workload_datasets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workload_records_dataset_id", "workload_records", ["dataset_id"], unique=False)
    op.create_index("ix_workload_records_team_id", "workload_records", ["team_id"], unique=False)
    op.create_index(
        "ix_workload_records_team_provider",
        "workload_records",
        ["team_id", "provider"],
        unique=False,
    )

    op.create_table(
        "dataset_metrics",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", sa.String(length=64), nullable=False),
        sa.Column("workload_count", sa.Integer(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=False),
        sa.Column("energy_kwh", sa.Float(), nullable=False),
        sa.Column("carbon_kg", sa.Float(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dataset_id"], ["workload_datasets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dataset_metrics_dataset_id", "dataset_metrics", ["dataset_id"], unique=False)
    op.create_index("ix_dataset_metrics_team_id", "dataset_metrics", ["team_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_dataset_metrics_team_id", table_name="dataset_metrics")
    op.drop_index("ix_dataset_metrics_dataset_id", table_name="dataset_metrics")
    op.drop_table("dataset_metrics")
    op.drop_index("ix_workload_records_team_provider", table_name="workload_records")
    op.drop_index("ix_workload_records_team_id", table_name="workload_records")
    op.drop_index("ix_workload_records_dataset_id", table_name="workload_records")
    op.drop_table("workload_records")
    op.drop_index("ix_workload_datasets_source_type", table_name="workload_datasets")
    op.drop_index("ix_workload_datasets_team_id", table_name="workload_datasets")
    op.drop_table("workload_datasets")
