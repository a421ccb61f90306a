"""
db/models/dataset_metric.py

DatasetMetric model: aggregate cost, energy and carbon for one dataset.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Float, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.workload_dataset import WorkloadDataset


class DatasetMetric(Base, TimestampMixin):
    """
    Totals rounded to 2 decimals at write time.
    """

    __tablename__ = "dataset_metrics"

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
    workload_count: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    energy_kwh: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    carbon_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    dataset: Mapped["WorkloadDataset"] = relationship(
        "WorkloadDataset",
        back_populates="metrics",
    )

    __table_args__ = (
        Index("ix_dataset_metrics_dataset_id", "dataset_id"),
        Index("ix_dataset_metrics_team_id", "team_id"),
    )
