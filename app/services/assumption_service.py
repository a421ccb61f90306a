"""
app/services/assumption_service.py

Service layer for reviewing and overriding calculation assumptions.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.domain.assumptions import AssumptionEntry
from app.logging_utils import log_event
from app.repositories.team_assumption_repository import TeamAssumptionRepository
from metrics.assumptions import AssumptionResolution, AssumptionResolver, ResolvedAssumptionSet
from metrics.reference_data import REFERENCE_CONSTANTS, AssumptionValidationError

logger = logging.getLogger(__name__)


class AssumptionService:
    """
    Lists effective assumptions and writes validated overrides.
    """

    def __init__(
        self,
        *,
        repository: TeamAssumptionRepository,
        resolver: AssumptionResolver | None = None,
    ) -> None:
        self._repository = repository
        self._resolver = resolver or AssumptionResolver(repository)

    def list_assumptions(self, team_id: str) -> tuple[AssumptionResolution, list[AssumptionEntry]]:
        resolution = self._resolver.resolve(team_id)
        if resolution.error is not None:
            log_event(
                logger,
                logging.WARNING,
                "assumption_overrides_unavailable",
                team_id=team_id,
                error=str(resolution.error),
            )
        entries = [self._entry(resolution.assumptions, name) for name in REFERENCE_CONSTANTS]
        return resolution, entries

    def set_override(
        self,
        *,
        team_id: str,
        constant_name: str,
        value: Any,
        source_label: str | None = None,
    ) -> AssumptionEntry:
        """
        Raises:
            AssumptionValidationError: rejected value; nothing is written.
            AssumptionStoreError: storage failure.
        """

        row = self._repository.set_override(
            team_id=team_id,
            constant_name=constant_name,
            value=value,
            source_label=source_label,
        )
        log_event(
            logger,
            logging.INFO,
            "assumption_override_saved",
            team_id=team_id,
            constant_name=constant_name,
            value=row.value,
        )
        assumptions = ResolvedAssumptionSet(
            values={constant_name: row.value},
            team_id=team_id,
            overridden=frozenset({constant_name}),
            source_labels={constant_name: row.source_label} if row.source_label else {},
        )
        return self._entry(assumptions, constant_name)

    def reset_override(self, *, team_id: str, constant_name: str) -> bool:
        if constant_name not in REFERENCE_CONSTANTS:
            raise AssumptionValidationError(
                message=f"Unknown assumption '{constant_name}'.",
                constant_name=constant_name,
            )
        removed = self._repository.clear_override(team_id=team_id, constant_name=constant_name)
        log_event(
            logger,
            logging.INFO,
            "assumption_override_reset",
            team_id=team_id,
            constant_name=constant_name,
            removed=removed,
        )
        return removed

    @staticmethod
    def _entry(assumptions: ResolvedAssumptionSet, name: str) -> AssumptionEntry:
        constant = REFERENCE_CONSTANTS[name]
        return AssumptionEntry(
            name=name,
            value=assumptions[name],
            default_value=float(constant.value),
            unit=constant.unit,
            category=constant.category,
            source_label=assumptions.source_of(name),
            overridden=name in assumptions.overridden,
        )


def build_assumption_service(db: Session) -> AssumptionService:
    """
    Build a request-scoped assumption service bound to ``db``.
    """

    return AssumptionService(repository=TeamAssumptionRepository(db))
