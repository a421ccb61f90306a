"""
app/domain/assumptions.py

Domain models for assumption review and override management.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AssumptionEntry:
    """
    One effective constant with its provenance.
    """

    name: str
    value: float
    default_value: float
    unit: str
    category: str
    source_label: str
    overridden: bool
