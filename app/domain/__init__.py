"""
app/domain package marker.
"""

from app.domain.assumptions import AssumptionEntry
from app.domain.workload import (
    DatasetMetricWrite,
    DatasetSummary,
    DatasetWrite,
    ParsedWorkloadRow,
    RowCoercionIssue,
    WorkloadIngestionResult,
    WorkloadRecordWrite,
    WorkloadResult,
)

__all__ = [
    "AssumptionEntry",
    "DatasetMetricWrite",
    "DatasetSummary",
    "DatasetWrite",
    "ParsedWorkloadRow",
    "RowCoercionIssue",
    "WorkloadIngestionResult",
    "WorkloadRecordWrite",
    "WorkloadResult",
]
