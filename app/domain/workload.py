"""
app/domain/workload.py

Domain models used by the workload ingestion flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from detection.provider_detection import DetectionResult
from metrics.calculator import NormalizedWorkloadRecord, WorkloadMetricsResult

UNNAMED_WORKLOAD = "Unnamed Workload"


@dataclass(frozen=True)
class RowCoercionIssue:
    """
    A raw value that could not be coerced and fell back to its default.
    """

    row_number: int
    field_name: str
    message: str
    value: str | None = None


@dataclass(frozen=True)
class ParsedWorkloadRow:
    """
    Typed record plus the identifiers the calculator does not use.
    """

    record: NormalizedWorkloadRecord
    workload_id: str | None = None
    service: str | None = None
    issues: tuple[RowCoercionIssue, ...] = ()

    @property
    def display_name(self) -> str:
        return self.record.name or self.workload_id or UNNAMED_WORKLOAD


@dataclass(frozen=True)
class WorkloadResult:
    """
    Calculated metrics for one input row.
    """

    row_number: int
    name: str
    detection: DetectionResult
    metrics: WorkloadMetricsResult
    record: NormalizedWorkloadRecord
    cost: float | None = None
    persisted: bool = False


@dataclass(frozen=True)
class DatasetWrite:
    """
    Dataset header row handed to the workload store.
    """

    dataset_id: str
    team_id: str
    file_name: str
    source_type: str
    row_count: int
    column_mappings: list[dict[str, Any]]
    mapping_confidence: float
    assumption_source: str


@dataclass(frozen=True)
class WorkloadRecordWrite:
    """
    One persisted workload row.
    """

    dataset_id: str
    team_id: str
    name: str
    provider: str
    region: str
    instance_type: str | None
    vcpus: float | None
    memory_gb: float | None
    runtime_hours: float | None
    avg_cpu_utilization: float | None
    avg_memory_utilization: float | None
    total_energy_kwh: float
    total_carbon_kg: float
    confidence: int
    detection_method: str
    detection_confidence: float


@dataclass(frozen=True)
class DatasetMetricWrite:
    """
    Aggregate totals for one dataset.
    """

    dataset_id: str
    team_id: str
    workload_count: int
    cost: float
    energy_kwh: float
    carbon_kg: float


@dataclass(frozen=True)
class DatasetSummary:
    """
    End-of-run ingestion summary.
    """

    dataset_id: str
    team_id: str
    file_name: str
    source_type: str
    workload_count: int
    rows_persisted: int
    total_cost: float
    total_energy_kwh: float
    total_carbon_kg: float
    mapping_confidence: float
    assumptions_degraded: bool = False


@dataclass(frozen=True)
class WorkloadIngestionResult:
    """
    Full outcome of one CSV ingestion.
    """

    dataset_summary: DatasetSummary
    workload_results: list[WorkloadResult] = field(default_factory=list)
    row_issues: list[RowCoercionIssue] = field(default_factory=list)
