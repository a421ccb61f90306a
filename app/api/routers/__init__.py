"""
app/api/routers package marker.
"""

from app.api.routers.assumptions import router as assumptions_router
from app.api.routers.workload_ingestion import router as workload_ingestion_router

__all__ = [
    "assumptions_router",
    "workload_ingestion_router",
]
