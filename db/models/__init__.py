"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.dataset_metric import DatasetMetric
from db.models.team_assumption_override import TeamAssumptionOverride
from db.models.workload_dataset import WorkloadDataset
from db.models.workload_record import WorkloadRecord

__all__ = [
    "DatasetMetric",
    "TeamAssumptionOverride",
    "WorkloadDataset",
    "WorkloadRecord",
]
