"""
app/repositories/workload_repository.py

Persistence layer for ingested workload datasets.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.workload import DatasetMetricWrite, DatasetWrite, WorkloadRecordWrite
from db.models.dataset_metric import DatasetMetric
from db.models.workload_dataset import WorkloadDataset
from db.models.workload_record import WorkloadRecord


class WorkloadRepository:
    """
    Writes one ingestion (dataset, workloads, totals) in a single commit.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def save_ingestion(
        self,
        *,
        dataset: DatasetWrite,
        workloads: Sequence[WorkloadRecordWrite],
        metrics: DatasetMetricWrite,
    ) -> None:
        """
        Persist the full write set or nothing.

        Raises:
            SQLAlchemyError: the transaction was rolled back.
        """

        dataset_id = uuid.UUID(dataset.dataset_id)
        try:
            self._session.add(
                WorkloadDataset(
                    id=dataset_id,
                    team_id=dataset.team_id,
                    file_name=dataset.file_name,
                    source_type=dataset.source_type,
                    row_count=dataset.row_count,
                    column_mappings=dataset.column_mappings,
                    mapping_confidence=dataset.mapping_confidence,
                    assumption_source=dataset.assumption_source,
                )
            )
            # Parent row must exist before the FK-bearing children.
            self._session.flush()
            self._session.add_all([self._to_model(row, dataset_id) for row in workloads])
            self._session.add(
                DatasetMetric(
                    dataset_id=dataset_id,
                    team_id=metrics.team_id,
                    workload_count=metrics.workload_count,
                    cost=metrics.cost,
                    energy_kwh=metrics.energy_kwh,
                    carbon_kg=metrics.carbon_kg,
                )
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

    @staticmethod
    def _to_model(row: WorkloadRecordWrite, dataset_id: uuid.UUID) -> WorkloadRecord:
        return WorkloadRecord(
            dataset_id=dataset_id,
            team_id=row.team_id,
            name=row.name,
            provider=row.provider,
            region=row.region,
            instance_type=row.instance_type,
            vcpus=row.vcpus,
            memory_gb=row.memory_gb,
            runtime_hours=row.runtime_hours,
            avg_cpu_utilization=row.avg_cpu_utilization,
            avg_memory_utilization=row.avg_memory_utilization,
            total_energy_kwh=row.total_energy_kwh,
            total_carbon_kg=row.total_carbon_kg,
            confidence=row.confidence,
            detection_method=row.detection_method,
            detection_confidence=row.detection_confidence,
        )
