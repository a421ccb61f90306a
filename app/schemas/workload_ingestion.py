"""
app/schemas/workload_ingestion.py

Response schemas for workload ingestion endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ColumnMappingResponse(BaseModel):
    """
    API response model for one detected column mapping.
    """

    source_column: str
    target_field: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    strategy: str


class SchemaPreviewResponse(BaseModel):
    """
    API response model for schema detection without ingestion.
    """

    source_type: str
    implied_provider: str | None = None
    mapping_confidence: float = Field(..., ge=0.0, le=1.0)
    mappings: list[ColumnMappingResponse] = Field(default_factory=list)


class RowIssueResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    field_name: str
    message: str
    value: str | None = None


class WorkloadResultResponse(BaseModel):
    """
    API response model for one calculated workload.
    """

    row_number: int = Field(..., ge=1)
    name: str
    provider: str
    region: str
    detection_method: str
    detection_confidence: float = Field(..., ge=0.0, le=1.0)
    energy_kwh: float = Field(..., ge=0.0)
    carbon_kg: float = Field(..., ge=0.0)
    confidence_score: int = Field(..., ge=0, le=100)
    cost: float | None = None
    persisted: bool


class DatasetSummaryResponse(BaseModel):
    dataset_id: str
    team_id: str
    file_name: str
    source_type: str
    workload_count: int = Field(..., ge=0)
    rows_persisted: int = Field(..., ge=0)
    total_cost: float
    total_energy_kwh: float = Field(..., ge=0.0)
    total_carbon_kg: float = Field(..., ge=0.0)
    mapping_confidence: float = Field(..., ge=0.0, le=1.0)
    assumptions_degraded: bool = False


class WorkloadIngestionResponse(BaseModel):
    """
    API response model for a completed workload ingestion.
    """

    dataset_summary: DatasetSummaryResponse
    workload_results: list[WorkloadResultResponse] = Field(default_factory=list)
    row_issues: list[RowIssueResponse] = Field(default_factory=list)
