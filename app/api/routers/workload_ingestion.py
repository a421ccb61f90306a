"""
app/api/routers/workload_ingestion.py

Workload CSV ingestion HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Query, UploadFile, status

from app.api.dependencies import get_csv_upload, get_workload_ingestion_service
from app.schemas.workload_ingestion import (
    ColumnMappingResponse,
    DatasetSummaryResponse,
    RowIssueResponse,
    SchemaPreviewResponse,
    WorkloadIngestionResponse,
    WorkloadResultResponse,
)
from app.services.workload_ingestion_service import (
    WorkloadIngestionService,
    WorkloadPersistenceError,
    WorkloadUploadError,
)

router = APIRouter(tags=["workload-ingestion"])


@router.post("/teams/{team_id}/workload-uploads", response_model=WorkloadIngestionResponse)
def upload_workloads(
    team_id: str = Path(..., min_length=1, max_length=64),
    file: UploadFile = Depends(get_csv_upload),
    file_name: str | None = Query(default=None, max_length=255, description="Optional display name"),
    ingestion_service: WorkloadIngestionService = Depends(get_workload_ingestion_service),
) -> WorkloadIngestionResponse:
    """
    Ingest one workload CSV and return per-row metrics plus dataset totals.
    """

    try:
        result = ingestion_service.ingest(upload_file=file, team_id=team_id, file_name=file_name)
    except WorkloadUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except WorkloadPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist workload dataset.",
        ) from exc
    finally:
        file.file.close()

    summary = result.dataset_summary
    return WorkloadIngestionResponse(
        dataset_summary=DatasetSummaryResponse(
            dataset_id=summary.dataset_id,
            team_id=summary.team_id,
            file_name=summary.file_name,
            source_type=summary.source_type,
            workload_count=summary.workload_count,
            rows_persisted=summary.rows_persisted,
            total_cost=summary.total_cost,
            total_energy_kwh=summary.total_energy_kwh,
            total_carbon_kg=summary.total_carbon_kg,
            mapping_confidence=summary.mapping_confidence,
            assumptions_degraded=summary.assumptions_degraded,
        ),
        workload_results=[
            WorkloadResultResponse(
                row_number=item.row_number,
                name=item.name,
                provider=item.detection.provider,
                region=item.detection.region,
                detection_method=item.detection.method,
                detection_confidence=item.detection.confidence,
                energy_kwh=item.metrics.energy_kwh,
                carbon_kg=item.metrics.carbon_kg,
                confidence_score=item.metrics.confidence_score,
                cost=item.cost,
                persisted=item.persisted,
            )
            for item in result.workload_results
        ],
        row_issues=[
            RowIssueResponse(
                row_number=issue.row_number,
                field_name=issue.field_name,
                message=issue.message,
                value=issue.value,
            )
            for issue in result.row_issues
        ],
    )


@router.post("/workload-uploads/preview", response_model=SchemaPreviewResponse)
def preview_workload_schema(
    file: UploadFile = Depends(get_csv_upload),
    ingestion_service: WorkloadIngestionService = Depends(get_workload_ingestion_service),
) -> SchemaPreviewResponse:
    """
    Detect how the CSV's columns would be read, without ingesting it.
    """

    try:
        detection = ingestion_service.preview(upload_file=file)
    except WorkloadUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return SchemaPreviewResponse(
        source_type=detection.source_type,
        implied_provider=detection.implied_provider,
        mapping_confidence=round(detection.average_confidence, 4),
        mappings=[ColumnMappingResponse(**mapping.to_dict()) for mapping in detection.mappings],
    )
