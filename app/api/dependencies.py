"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and service wiring.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.services.assumption_service import AssumptionService, build_assumption_service
from app.services.workload_ingestion_service import (
    WorkloadIngestionService,
    build_workload_ingestion_service,
)
from db.session import get_db

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_workload_ingestion_service(db: Session = Depends(get_db)) -> WorkloadIngestionService:
    return build_workload_ingestion_service(db)


def get_assumption_service(db: Session = Depends(get_db)) -> AssumptionService:
    return build_assumption_service(db)
