"""
app/validators/workload_validator.py

Type coercion for mapped workload rows.

Rows are never rejected: a value that cannot be parsed becomes ``None``
and the calculator applies its category default.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from app.domain.workload import ParsedWorkloadRow, RowCoercionIssue
from metrics.calculator import NormalizedWorkloadRecord

MILLISECONDS_PER_HOUR = 3_600_000

_HOUR_UNITS = {"h", "hr", "hrs", "hour", "hours", "hour(s)"}

# Stripped before numeric parsing: "$1,024.50", "78%".
_NUMERIC_NOISE = ("$", ",", "%", " ")


class WorkloadRowParser:
    """
    Parses mapped row values into ``NormalizedWorkloadRecord``.
    """

    def parse(self, *, mapped_row: Mapping[str, str | None], row_number: int) -> ParsedWorkloadRow:
        issues: list[RowCoercionIssue] = []

        def number(field_name: str, *, allow_negative: bool = False) -> float | None:
            return self._parse_number(
                mapped_row.get(field_name),
                field_name=field_name,
                row_number=row_number,
                allow_negative=allow_negative,
                issues=issues,
            )

        runtime_hours = number("runtime_hours")
        if runtime_hours is None:
            runtime_hours = self._runtime_from_usage(mapped_row, number)

        cost = number("cost", allow_negative=True)
        if cost is None:
            cost = number("unblended_cost", allow_negative=True)

        record = NormalizedWorkloadRecord(
            provider=self._parse_optional_string(mapped_row.get("provider")),
            region=self._parse_optional_string(mapped_row.get("region")),
            instance_type=self._parse_optional_string(mapped_row.get("instance_type")),
            vcpus=number("vcpus"),
            runtime_hours=runtime_hours,
            cpu_utilization=number("cpu_utilization"),
            gpu_model=self._parse_optional_string(mapped_row.get("gpu_model")),
            name=self._parse_optional_string(mapped_row.get("name")),
            memory_gb=number("memory_gb"),
            memory_utilization=number("memory_utilization"),
            cost=cost,
            credits=number("credits"),
            dbus=number("dbus"),
        )
        return ParsedWorkloadRow(
            record=record,
            workload_id=self._parse_optional_string(mapped_row.get("workload_id")),
            service=self._parse_optional_string(mapped_row.get("service")),
            issues=tuple(issues),
        )

    def _runtime_from_usage(self, mapped_row: Mapping[str, str | None], number: Any) -> float | None:
        unit = self._parse_optional_string(mapped_row.get("usage_unit"))
        if unit is None or unit.lower() in _HOUR_UNITS:
            usage_amount = number("usage_amount")
            if usage_amount is not None:
                return usage_amount

        elapsed_ms = number("elapsed_ms")
        if elapsed_ms is not None:
            return elapsed_ms / MILLISECONDS_PER_HOUR
        return None

    def _parse_number(
        self,
        value: str | None,
        *,
        field_name: str,
        row_number: int,
        allow_negative: bool,
        issues: list[RowCoercionIssue],
    ) -> float | None:
        if self._is_blank(value):
            return None

        raw_value = str(value).strip()
        cleaned = raw_value
        for noise in _NUMERIC_NOISE:
            cleaned = cleaned.replace(noise, "")

        try:
            parsed = float(Decimal(cleaned.strip()))
        except (InvalidOperation, ValueError):
            issues.append(
                RowCoercionIssue(
                    row_number=row_number,
                    field_name=field_name,
                    message="Value is not numeric; default applied.",
                    value=raw_value,
                )
            )
            return None

        if not math.isfinite(parsed):
            issues.append(
                RowCoercionIssue(
                    row_number=row_number,
                    field_name=field_name,
                    message="Value is not finite; default applied.",
                    value=raw_value,
                )
            )
            return None

        if parsed < 0 and not allow_negative:
            issues.append(
                RowCoercionIssue(
                    row_number=row_number,
                    field_name=field_name,
                    message="Negative value; default applied.",
                    value=raw_value,
                )
            )
            return None

        return parsed

    def _parse_optional_string(self, value: str | None) -> str | None:
        if self._is_blank(value):
            return None
        return str(value).strip()

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
