"""
metrics/reference_data.py

Static reference constants for energy, carbon, and cost estimation.

Values are loaded once at import and never mutated. Callers that need a
writable table must take a copy via :func:`default_values`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping


class ConstantCategory:
    """Valid reference constant categories."""

    POWER = "power"
    PUE = "pue"
    CARBON_INTENSITY = "carbon_intensity"
    UTILIZATION = "utilization"
    COST = "cost"


class AssumptionValidationError(ValueError):
    """
    Raised when an assumption override is rejected at write time.
    """

    def __init__(self, *, message: str, constant_name: str, value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.constant_name = constant_name
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "constant_name": self.constant_name,
            "value": self.value,
        }


@dataclass(frozen=True)
class ReferenceConstant:
    """
    One named reference value with its unit and provenance.
    """

    name: str
    value: float
    unit: str
    category: str
    source_label: str


@dataclass(frozen=True)
class ValidationRange:
    """Inclusive bounds accepted for overrides in one category."""

    minimum: float
    maximum: float
    message: str


_CONSTANTS: tuple[ReferenceConstant, ...] = (
    # GPU power draw
    ReferenceConstant("gpu_a100", 400, "W", ConstantCategory.POWER, "NVIDIA A100 TDP"),
    ReferenceConstant("gpu_v100", 300, "W", ConstantCategory.POWER, "NVIDIA V100 TDP"),
    ReferenceConstant("gpu_h100", 700, "W", ConstantCategory.POWER, "NVIDIA H100 TDP"),
    ReferenceConstant("gpu_t4", 70, "W", ConstantCategory.POWER, "NVIDIA T4 TDP"),
    # CPU instance tiers by vCPU count
    ReferenceConstant("cpu_small", 20, "W", ConstantCategory.POWER, "CCF Coefficients"),
    ReferenceConstant("cpu_medium", 40, "W", ConstantCategory.POWER, "CCF Coefficients"),
    ReferenceConstant("cpu_large", 80, "W", ConstantCategory.POWER, "CCF Coefficients"),
    ReferenceConstant("cpu_xlarge", 160, "W", ConstantCategory.POWER, "CCF Coefficients"),
    # PUE by provider
    ReferenceConstant("pue_aws", 1.135, "", ConstantCategory.PUE, "AWS Sustainability Report 2023"),
    ReferenceConstant("pue_gcp", 1.10, "", ConstantCategory.PUE, "Google Environmental Report 2023"),
    ReferenceConstant("pue_azure", 1.18, "", ConstantCategory.PUE, "Microsoft Sustainability Report 2023"),
    ReferenceConstant("pue_default", 1.58, "", ConstantCategory.PUE, "Uptime Institute Global Average"),
    # Grid carbon intensity by region
    ReferenceConstant("ci_us_east_1", 337, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "EPA eGRID 2022 - SERC"),
    ReferenceConstant("ci_us_east_2", 410, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "EPA eGRID 2022 - RFC"),
    ReferenceConstant("ci_us_west_1", 210, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "EPA eGRID 2022 - WECC"),
    ReferenceConstant("ci_us_west_2", 117, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "EPA eGRID 2022 - NWPP"),
    ReferenceConstant("ci_eu_west_1", 296, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "Ember 2023"),
    ReferenceConstant("ci_eu_west_2", 231, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "Ember 2023 - UK"),
    ReferenceConstant("ci_eu_central_1", 311, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "Ember 2023 - Germany"),
    ReferenceConstant("ci_eu_north_1", 28, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "Ember 2023 - Sweden"),
    ReferenceConstant("ci_ap_south_1", 708, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "IEA 2023 - India"),
    ReferenceConstant("ci_ap_northeast_1", 471, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "IEA 2023 - Japan"),
    ReferenceConstant("ci_ap_southeast_1", 408, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "IEA 2023 - Singapore"),
    ReferenceConstant("ci_ap_southeast_2", 530, "gCO2/kWh", ConstantCategory.CARBON_INTENSITY, "IEA 2023 - Australia"),
    # Utilization defaults when not measured
    ReferenceConstant("util_gpu", 65, "%", ConstantCategory.UTILIZATION, "Industry estimate"),
    ReferenceConstant("util_cpu", 50, "%", ConstantCategory.UTILIZATION, "Industry estimate"),
    ReferenceConstant("util_memory", 60, "%", ConstantCategory.UTILIZATION, "Industry estimate"),
    # Consumption-billed services
    ReferenceConstant("cost_snowflake", 3.00, "$/credit", ConstantCategory.COST, "Snowflake standard pricing"),
    ReferenceConstant("cost_databricks", 0.55, "$/DBU", ConstantCategory.COST, "Databricks pricing"),
)

REFERENCE_CONSTANTS: Mapping[str, ReferenceConstant] = MappingProxyType(
    {constant.name: constant for constant in _CONSTANTS}
)

VALIDATION_RANGES: Mapping[str, ValidationRange] = MappingProxyType(
    {
        ConstantCategory.PUE: ValidationRange(1.0, 3.0, "PUE must be between 1.0 and 3.0."),
        ConstantCategory.POWER: ValidationRange(1, 1000, "Power values must be between 1W and 1000W."),
        ConstantCategory.CARBON_INTENSITY: ValidationRange(
            0, 1000, "Carbon intensity must be between 0 and 1000 gCO2/kWh."
        ),
        ConstantCategory.UTILIZATION: ValidationRange(0, 100, "Utilization must be between 0% and 100%."),
        ConstantCategory.COST: ValidationRange(0, 1000, "Cost rates must be between 0 and 1000."),
    }
)

# Region whose intensity applies when a region has no table entry.
FALLBACK_REGION = "us-east-1"
FALLBACK_CARBON_INTENSITY_KEY = "ci_us_east_1"


def default_values() -> dict[str, float]:
    """
    Return a fresh, mutable name -> value copy of the default table.
    """

    return {name: float(constant.value) for name, constant in REFERENCE_CONSTANTS.items()}


def get_constant(name: str) -> ReferenceConstant | None:
    return REFERENCE_CONSTANTS.get(name)


def is_real_number(value: Any) -> bool:
    """
    Return True for finite int/float values, excluding bools.
    """

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_override(name: str, value: Any) -> float:
    """
    Validate one override against its category range.

    Out-of-range values are rejected, never clamped.

    Raises:
        AssumptionValidationError: unknown constant, non-numeric value,
            or value outside the category range.
    """

    constant = REFERENCE_CONSTANTS.get(name)
    if constant is None:
        raise AssumptionValidationError(
            message=f"Unknown assumption '{name}'.",
            constant_name=name,
            value=value,
        )
    if not is_real_number(value):
        raise AssumptionValidationError(
            message="Assumption value must be a finite number.",
            constant_name=name,
            value=value,
        )

    bounds = VALIDATION_RANGES[constant.category]
    if not bounds.minimum <= value <= bounds.maximum:
        raise AssumptionValidationError(
            message=bounds.message,
            constant_name=name,
            value=value,
        )
    return float(value)
