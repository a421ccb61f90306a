"""
app/schemas package marker.
"""

from app.schemas.assumptions import (
    AssumptionListResponse,
    AssumptionOverrideRequest,
    AssumptionResponse,
)
from app.schemas.workload_ingestion import (
    ColumnMappingResponse,
    DatasetSummaryResponse,
    RowIssueResponse,
    SchemaPreviewResponse,
    WorkloadIngestionResponse,
    WorkloadResultResponse,
)

__all__ = [
    "AssumptionListResponse",
    "AssumptionOverrideRequest",
    "AssumptionResponse",
    "ColumnMappingResponse",
    "DatasetSummaryResponse",
    "RowIssueResponse",
    "SchemaPreviewResponse",
    "WorkloadIngestionResponse",
    "WorkloadResultResponse",
]
