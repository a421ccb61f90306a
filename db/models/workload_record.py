"""
db/models/workload_record.py

WorkloadRecord model: one calculated workload row of a dataset.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Float, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.workload_dataset import WorkloadDataset


class WorkloadRecord(Base, TimestampMixin):
    """
    Normalized workload fields alongside the metrics calculated for them.
    """

    __tablename__ = "workload_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    dataset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("workload_datasets.id", ondelete="CASCADE"),
        nullable=False,
    )

    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    instance_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    vcpus: Mapped[float | None] = mapped_column(Float, nullable=True)
    memory_gb: Mapped[float | None] = mapped_column(Float, nullable=True)
    runtime_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_cpu_utilization: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_memory_utilization: Mapped[float | None] = mapped_column(Float, nullable=True)

    total_energy_kwh: Mapped[float] = mapped_column(Float, nullable=False)
    total_carbon_kg: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Calculation confidence, 0-100",
    )

    detection_method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="explicit | instance_pattern | region_pattern | gpu_pattern | fallback",
    )
    detection_confidence: Mapped[float] = mapped_column(Float, nullable=False)

    dataset: Mapped["WorkloadDataset"] = relationship(
        "WorkloadDataset",
        back_populates="workloads",
    )

    __table_args__ = (
        Index("ix_workload_records_dataset_id", "dataset_id"),
        Index("ix_workload_records_team_id", "team_id"),
        Index("ix_workload_records_team_provider", "team_id", "provider"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkloadRecord id={self.id} name={self.name!r} provider={self.provider!r} "
            f"energy_kwh={self.total_energy_kwh} carbon_kg={self.total_carbon_kg}>"
        )
