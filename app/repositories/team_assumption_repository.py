"""
app/repositories/team_assumption_repository.py

Persistence layer for per-team assumption overrides.

This is the write boundary for overrides: every value is range-checked
here, so the resolver can trust what it reads back.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.team_assumption_override import TeamAssumptionOverride
from metrics.assumptions import AssumptionStoreError
from metrics.reference_data import validate_override


class TeamAssumptionRepository:
    """
    SQLAlchemy-backed assumption override store.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, team_id: str) -> dict[str, dict[str, Any]] | None:
        """
        Return the team's override document, or None when it has none.

        Raises:
            AssumptionStoreError: the overrides could not be read.
        """

        try:
            rows = self.list_overrides(team_id)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise AssumptionStoreError(f"Failed to load assumption overrides for team {team_id}.") from exc

        if not rows:
            return None
        return {
            row.constant_name: {"value": row.value, "source_label": row.source_label}
            for row in rows
        }

    def list_overrides(self, team_id: str) -> list[TeamAssumptionOverride]:
        stmt = (
            select(TeamAssumptionOverride)
            .where(TeamAssumptionOverride.team_id == team_id)
            .order_by(TeamAssumptionOverride.constant_name)
        )
        return list(self._session.execute(stmt).scalars().all())

    def set_override(
        self,
        *,
        team_id: str,
        constant_name: str,
        value: Any,
        source_label: str | None = None,
    ) -> TeamAssumptionOverride:
        """
        Insert or update one override keyed by (team_id, constant_name).

        Raises:
            AssumptionValidationError: unknown name or out-of-range value.
            AssumptionStoreError: the write failed.
        """

        validated = validate_override(constant_name, value)
        label = source_label.strip() if source_label and source_label.strip() else None

        try:
            stmt = select(TeamAssumptionOverride).where(
                TeamAssumptionOverride.team_id == team_id,
                TeamAssumptionOverride.constant_name == constant_name,
            )
            existing = self._session.execute(stmt).scalars().first()
            if existing is None:
                existing = TeamAssumptionOverride(
                    team_id=team_id,
                    constant_name=constant_name,
                    value=validated,
                    source_label=label,
                )
                self._session.add(existing)
            else:
                existing.value = validated
                existing.source_label = label
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise AssumptionStoreError(f"Failed to save assumption override {constant_name!r}.") from exc
        return existing

    def clear_override(self, *, team_id: str, constant_name: str) -> bool:
        """
        Delete one override; returns False when none existed.
        """

        try:
            result = self._session.execute(
                delete(TeamAssumptionOverride).where(
                    TeamAssumptionOverride.team_id == team_id,
                    TeamAssumptionOverride.constant_name == constant_name,
                )
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise AssumptionStoreError(f"Failed to clear assumption override {constant_name!r}.") from exc
        return bool(result.rowcount)
