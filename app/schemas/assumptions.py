"""
app/schemas/assumptions.py

Request and response schemas for assumption endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class AssumptionOverrideRequest(BaseModel):
    """
    Body for writing one override. Range checks happen in the service.
    """

    value: float
    source_label: str | None = Field(default=None, max_length=255)


class AssumptionResponse(BaseModel):
    name: str
    value: float
    default_value: float
    unit: str
    category: str
    source_label: str
    overridden: bool


class AssumptionListResponse(BaseModel):
    """
    Effective assumption set for one team.
    """

    team_id: str
    degraded: bool = False
    assumptions: list[AssumptionResponse] = Field(default_factory=list)
