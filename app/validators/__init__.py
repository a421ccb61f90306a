"""
app/validators package marker.
"""

from app.validators.workload_validator import WorkloadRowParser

__all__ = [
    "WorkloadRowParser",
]
