"""
db/models/workload_dataset.py

WorkloadDataset model: one uploaded workload CSV.
Owns the workload rows persisted from it and its aggregate metrics.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.dataset_metric import DatasetMetric
    from db.models.workload_record import WorkloadRecord


class WorkloadDataset(Base, TimestampMixin):
    """
    Represents one ingested workload file.

    column_mappings stores the detected source -> field mapping with per
    column confidence so a reviewer can audit how the file was read.
    """

    __tablename__ = "workload_datasets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    team_id: Mapped[str] = mapped_column(String(64), nullable=False)

    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Original upload filename",
    )

    source_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Detected layout: aws_cur, gcp_billing, canonical, generic, ...",
    )

    row_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Data rows read from the file, persisted or not",
    )

    column_mappings: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    mapping_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    assumption_source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="defaults | team_overrides | defaults_storage_unavailable",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    workloads: Mapped[list["WorkloadRecord"]] = relationship(
        "WorkloadRecord",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    metrics: Mapped[list["DatasetMetric"]] = relationship(
        "DatasetMetric",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("ix_workload_datasets_team_id", "team_id"),
        Index("ix_workload_datasets_source_type", "source_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkloadDataset id={self.id} file_name={self.file_name!r} "
            f"team_id={self.team_id!r} rows={self.row_count}>"
        )
