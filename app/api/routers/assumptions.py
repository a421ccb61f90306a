"""
app/api/routers/assumptions.py

Assumption review and override HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status

from app.api.dependencies import get_assumption_service
from app.domain.assumptions import AssumptionEntry
from app.schemas.assumptions import AssumptionListResponse, AssumptionOverrideRequest, AssumptionResponse
from app.services.assumption_service import AssumptionService
from metrics.assumptions import AssumptionStoreError
from metrics.reference_data import AssumptionValidationError

router = APIRouter(tags=["assumptions"])


def _to_response(entry: AssumptionEntry) -> AssumptionResponse:
    return AssumptionResponse(
        name=entry.name,
        value=entry.value,
        default_value=entry.default_value,
        unit=entry.unit,
        category=entry.category,
        source_label=entry.source_label,
        overridden=entry.overridden,
    )


@router.get("/teams/{team_id}/assumptions", response_model=AssumptionListResponse)
def list_assumptions(
    team_id: str = Path(..., min_length=1, max_length=64),
    service: AssumptionService = Depends(get_assumption_service),
) -> AssumptionListResponse:
    """
    Return every effective constant for the team with its provenance.
    """

    resolution, entries = service.list_assumptions(team_id)
    return AssumptionListResponse(
        team_id=team_id,
        degraded=resolution.degraded,
        assumptions=[_to_response(entry) for entry in entries],
    )


@router.put("/teams/{team_id}/assumptions/{name}", response_model=AssumptionResponse)
def set_assumption(
    team_id: str = Path(..., min_length=1, max_length=64),
    name: str = Path(..., min_length=1, max_length=64),
    payload: AssumptionOverrideRequest = Body(...),
    service: AssumptionService = Depends(get_assumption_service),
) -> AssumptionResponse:
    try:
        entry = service.set_override(
            team_id=team_id,
            constant_name=name,
            value=payload.value,
            source_label=payload.source_label,
        )
    except AssumptionValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except AssumptionStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Assumption storage unavailable.",
        ) from exc
    return _to_response(entry)


@router.delete("/teams/{team_id}/assumptions/{name}", status_code=status.HTTP_204_NO_CONTENT)
def reset_assumption(
    team_id: str = Path(..., min_length=1, max_length=64),
    name: str = Path(..., min_length=1, max_length=64),
    service: AssumptionService = Depends(get_assumption_service),
) -> None:
    """
    Drop the team's override so the reference default applies again.
    """

    try:
        service.reset_override(team_id=team_id, constant_name=name)
    except AssumptionValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except AssumptionStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Assumption storage unavailable.",
        ) from exc
