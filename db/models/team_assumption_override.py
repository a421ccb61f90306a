"""
db/models/team_assumption_override.py

Per-team overrides of reference calculation constants.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Float, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class TeamAssumptionOverride(Base, TimestampMixin):
    """
    One validated override, keyed by (team_id, constant_name).

    Values are range-checked before they are written; readers trust them.
    """

    __tablename__ = "team_assumption_overrides"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    constant_name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Reference constant key, e.g. pue_aws or ci_us_east_1",
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    source_label: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Provenance shown next to the value",
    )

    __table_args__ = (
        UniqueConstraint("team_id", "constant_name", name="uq_team_assumption_overrides_team_constant"),
        Index("ix_team_assumption_overrides_team_id", "team_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TeamAssumptionOverride team_id={self.team_id!r} "
            f"constant_name={self.constant_name!r} value={self.value}>"
        )
