"""
app/repositories package marker.
"""

from app.repositories.team_assumption_repository import TeamAssumptionRepository
from app.repositories.workload_repository import WorkloadRepository

__all__ = [
    "TeamAssumptionRepository",
    "WorkloadRepository",
]
