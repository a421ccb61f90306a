"""
app/services package marker.
"""

from app.services.assumption_service import AssumptionService, build_assumption_service
from app.services.workload_ingestion_service import (
    WorkloadIngestionService,
    WorkloadPersistenceError,
    WorkloadUploadError,
    build_workload_ingestion_service,
)

__all__ = [
    "AssumptionService",
    "build_assumption_service",
    "WorkloadIngestionService",
    "WorkloadPersistenceError",
    "WorkloadUploadError",
    "build_workload_ingestion_service",
]
