"""
metrics/assumptions.py

Merges reference defaults with team-specific overrides into an immutable
snapshot used for one ingestion batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Protocol

from metrics.reference_data import REFERENCE_CONSTANTS, default_values, is_real_number

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "default"
OVERRIDE_SOURCE = "user_override"


class AssumptionStoreError(RuntimeError):
    """
    Raised by an override store when team overrides cannot be read.
    """


class AssumptionOverrideStore(Protocol):
    def get(self, team_id: str) -> Mapping[str, Mapping[str, Any]] | None:
        """
        Return ``{constant_name: {"value": number, "source_label": str}}``.

        A missing document is ``None`` (or empty), never an error.
        """
        ...


@dataclass(frozen=True)
class ResolvedAssumptionSet:
    """
    Flat constant_name -> value snapshot for one calculation session.
    """

    values: Mapping[str, float]
    team_id: str | None = None
    overridden: frozenset[str] = frozenset()
    source_labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze both mappings so a snapshot cannot drift mid-batch.
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "source_labels", MappingProxyType(dict(self.source_labels)))

    def __getitem__(self, name: str) -> float:
        return self.values[name]

    def get(self, name: str, default: float | None = None) -> float | None:
        return self.values.get(name, default)

    def source_of(self, name: str) -> str:
        if name in self.source_labels:
            return self.source_labels[name]
        if name in self.overridden:
            return OVERRIDE_SOURCE
        constant = REFERENCE_CONSTANTS.get(name)
        return constant.source_label if constant is not None else DEFAULT_SOURCE

    @classmethod
    def defaults(cls, team_id: str | None = None) -> "ResolvedAssumptionSet":
        return cls(values=default_values(), team_id=team_id)


@dataclass(frozen=True)
class AssumptionResolution:
    """
    Outcome of one resolve call.

    ``error`` is set when override storage failed and ``assumptions`` holds
    pure defaults. The caller decides whether to degrade.
    """

    assumptions: ResolvedAssumptionSet
    error: AssumptionStoreError | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


class AssumptionResolver:
    """
    Resolves per-team assumption snapshots.
    """

    def __init__(self, store: AssumptionOverrideStore | None = None) -> None:
        self._store = store

    def resolve(self, team_id: str | None) -> AssumptionResolution:
        """
        Merge the team's overrides over the defaults.

        Override keys absent from the defaults are ignored, as are values
        that are not finite numbers. Range checks happen at write time.
        """

        if self._store is None or not team_id:
            return AssumptionResolution(assumptions=ResolvedAssumptionSet.defaults(team_id))

        try:
            document = self._store.get(team_id)
        except AssumptionStoreError as exc:
            return AssumptionResolution(
                assumptions=ResolvedAssumptionSet.defaults(team_id),
                error=exc,
            )

        values = default_values()
        overridden: set[str] = set()
        labels: dict[str, str] = {}

        for name, entry in (document or {}).items():
            if name not in values:
                logger.debug("Ignoring unknown assumption override %r for team %s", name, team_id)
                continue
            raw_value = entry.get("value") if isinstance(entry, Mapping) else None
            if not is_real_number(raw_value):
                logger.debug("Ignoring non-numeric override %r=%r for team %s", name, raw_value, team_id)
                continue
            values[name] = float(raw_value)
            overridden.add(name)
            label = entry.get("source_label")
            if isinstance(label, str) and label.strip():
                labels[name] = label.strip()

        return AssumptionResolution(
            assumptions=ResolvedAssumptionSet(
                values=values,
                team_id=team_id,
                overridden=frozenset(overridden),
                source_labels=labels,
            )
        )
