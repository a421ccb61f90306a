"""
metrics/calculator.py

Deterministic energy, carbon, and confidence calculation for one workload.

Formula
-------
    compute_energy_kwh = base_power_w * (utilization / 100) * runtime_hours / 1000
    total_energy_kwh   = compute_energy_kwh * pue
    carbon_kg          = total_energy_kwh * carbon_intensity_g_per_kwh / 1000

Every input has a default path: a malformed or empty record still yields a
best-effort, low-confidence estimate. Nothing here raises for bad data.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Pattern

from metrics.assumptions import ResolvedAssumptionSet
from metrics.reference_data import FALLBACK_CARBON_INTENSITY_KEY

DEFAULT_VCPUS = 4.0
DEFAULT_RUNTIME_HOURS = 1.0
UNKNOWN_INSTANCE_TYPE = "unknown"

BASE_CONFIDENCE = 70
INSTANCE_TYPE_BONUS = 10
REGION_BONUS = 5
MEASURED_UTILIZATION_BONUS = 15

PUE_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("aws", "amazon"), "pue_aws"),
    (("gcp", "google"), "pue_gcp"),
    (("azure", "microsoft"), "pue_azure"),
)
DEFAULT_PUE_KEY = "pue_default"

# Longer aliases precede their prefixes (eastus2 before eastus).
CARBON_INTENSITY_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("us-east-2", "ohio", "eastus2"), "ci_us_east_2"),
    (("us-east-1", "virginia", "us-east4", "eastus"), "ci_us_east_1"),
    (("us-west-2", "oregon", "us-west1", "westus2"), "ci_us_west_2"),
    (("us-west-1", "california", "westus"), "ci_us_west_1"),
    (("eu-west-1", "ireland", "europe-west1", "northeurope"), "ci_eu_west_1"),
    (("eu-west-2", "london", "uk", "europe-west2"), "ci_eu_west_2"),
    (("eu-central-1", "frankfurt", "germany", "europe-west3"), "ci_eu_central_1"),
    (("eu-north-1", "stockholm", "sweden"), "ci_eu_north_1"),
    (("ap-south-1", "mumbai", "india", "asia-south1"), "ci_ap_south_1"),
    (("ap-northeast-1", "tokyo", "japan", "asia-northeast1"), "ci_ap_northeast_1"),
    (("ap-southeast-1", "singapore", "asia-southeast1"), "ci_ap_southeast_1"),
    (("ap-southeast-2", "sydney", "australia"), "ci_ap_southeast_2"),
)

# Instance families start a token: "p3.2xlarge" and "ml.p3.2xlarge" both match.
_FAMILY = r"(?:^|[.\s_\-])"

GPU_POWER_RULES: tuple[tuple[Pattern[str], str], ...] = (
    (
        re.compile(
            rf"(?<![a-z0-9])a100(?![0-9])|{_FAMILY}p4de?\.|{_FAMILY}a2-(high|mega|ultra)gpu"
            rf"|{_FAMILY}standard_nd\d+a?m?sr_v4"
        ),
        "gpu_a100",
    ),
    (re.compile(rf"(?<![a-z0-9])v100(?![0-9])|{_FAMILY}p3(dn)?\.|{_FAMILY}standard_nc\d+s_v3"), "gpu_v100"),
    (re.compile(rf"(?<![a-z0-9])h100(?![0-9])|{_FAMILY}p5e?\.|{_FAMILY}a3-"), "gpu_h100"),
    (re.compile(rf"(?<![a-z0-9])t4(?![a-z0-9])|{_FAMILY}g4(dn|ad)\."), "gpu_t4"),
)

CPU_POWER_TIERS: tuple[tuple[float, str], ...] = (
    (2, "cpu_small"),
    (4, "cpu_medium"),
    (8, "cpu_large"),
)
LARGEST_CPU_TIER_KEY = "cpu_xlarge"


@dataclass(frozen=True)
class NormalizedWorkloadRecord:
    """
    Canonical workload shape consumed by the calculator.

    Optional fields default during calculation when absent.
    """

    provider: str | None = None
    region: str | None = None
    instance_type: str | None = None
    vcpus: float | None = None
    runtime_hours: float | None = None
    cpu_utilization: float | None = None
    gpu_model: str | None = None
    name: str | None = None
    memory_gb: float | None = None
    memory_utilization: float | None = None
    cost: float | None = None
    credits: float | None = None
    dbus: float | None = None


@dataclass(frozen=True)
class WorkloadMetricsResult:
    energy_kwh: float
    carbon_kg: float
    confidence_score: int


@dataclass(frozen=True)
class MetricsBreakdown:
    """
    Intermediate values behind one result, for audit display.
    """

    base_power_w: float
    power_key: str
    utilization_pct: float
    utilization_measured: bool
    runtime_hours: float
    pue: float
    pue_key: str
    carbon_intensity: float
    carbon_intensity_key: str
    compute_energy_kwh: float
    total_energy_kwh: float
    carbon_kg: float
    result: WorkloadMetricsResult


def _finite_or_none(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip().lower()


class MetricsCalculator:
    """
    Stateless formula engine. Safe to share across batches.
    """

    def resolve_pue(self, assumptions: ResolvedAssumptionSet, provider: str | None) -> tuple[str, float]:
        provider_text = _text(provider)
        for keywords, key in PUE_RULES:
            if any(keyword in provider_text for keyword in keywords):
                return key, assumptions[key]
        return DEFAULT_PUE_KEY, assumptions[DEFAULT_PUE_KEY]

    def resolve_carbon_intensity(
        self,
        assumptions: ResolvedAssumptionSet,
        region: str | None,
    ) -> tuple[str, float]:
        region_text = _text(region)
        if region_text:
            for aliases, key in CARBON_INTENSITY_RULES:
                if any(alias in region_text for alias in aliases):
                    return key, assumptions[key]
        return FALLBACK_CARBON_INTENSITY_KEY, assumptions[FALLBACK_CARBON_INTENSITY_KEY]

    def resolve_base_power(
        self,
        assumptions: ResolvedAssumptionSet,
        instance_type: str | None,
        vcpus: float | None,
        gpu_model: str | None = None,
    ) -> tuple[str, float]:
        for candidate in (_text(instance_type), _text(gpu_model)):
            if not candidate:
                continue
            for pattern, key in GPU_POWER_RULES:
                if pattern.search(candidate):
                    return key, assumptions[key]

        cpu_count = _finite_or_none(vcpus)
        if cpu_count is None:
            cpu_count = DEFAULT_VCPUS
        for upper_bound, key in CPU_POWER_TIERS:
            if cpu_count <= upper_bound:
                return key, assumptions[key]
        return LARGEST_CPU_TIER_KEY, assumptions[LARGEST_CPU_TIER_KEY]

    def calculate(
        self,
        assumptions: ResolvedAssumptionSet,
        workload: NormalizedWorkloadRecord,
    ) -> WorkloadMetricsResult:
        return self.calculate_breakdown(assumptions, workload).result

    def calculate_breakdown(
        self,
        assumptions: ResolvedAssumptionSet,
        workload: NormalizedWorkloadRecord,
    ) -> MetricsBreakdown:
        # Steps run in a fixed order; each feeds the next.
        pue_key, pue = self.resolve_pue(assumptions, workload.provider)
        ci_key, carbon_intensity = self.resolve_carbon_intensity(assumptions, workload.region)
        power_key, base_power_w = self.resolve_base_power(
            assumptions,
            workload.instance_type,
            workload.vcpus,
            workload.gpu_model,
        )

        measured_utilization = _finite_or_none(workload.cpu_utilization)
        if measured_utilization is not None:
            utilization = max(0.0, min(100.0, measured_utilization))
        else:
            utilization = assumptions["util_cpu"]

        runtime_hours = _finite_or_none(workload.runtime_hours)
        if runtime_hours is None:
            runtime_hours = DEFAULT_RUNTIME_HOURS
        runtime_hours = max(0.0, runtime_hours)

        compute_energy_kwh = base_power_w * (utilization / 100) * runtime_hours / 1000
        total_energy_kwh = compute_energy_kwh * pue
        carbon_kg = total_energy_kwh * carbon_intensity / 1000

        confidence = BASE_CONFIDENCE
        instance_text = _text(workload.instance_type)
        if instance_text and instance_text != UNKNOWN_INSTANCE_TYPE:
            confidence += INSTANCE_TYPE_BONUS
        if _text(workload.region) and ci_key != FALLBACK_CARBON_INTENSITY_KEY:
            confidence += REGION_BONUS
        if measured_utilization is not None:
            confidence += MEASURED_UTILIZATION_BONUS

        result = WorkloadMetricsResult(
            energy_kwh=round(total_energy_kwh, 3),
            carbon_kg=round(carbon_kg, 3),
            confidence_score=int(max(0, min(100, confidence))),
        )
        return MetricsBreakdown(
            base_power_w=base_power_w,
            power_key=power_key,
            utilization_pct=utilization,
            utilization_measured=measured_utilization is not None,
            runtime_hours=runtime_hours,
            pue=pue,
            pue_key=pue_key,
            carbon_intensity=carbon_intensity,
            carbon_intensity_key=ci_key,
            compute_energy_kwh=compute_energy_kwh,
            total_energy_kwh=total_energy_kwh,
            carbon_kg=carbon_kg,
            result=result,
        )


def estimate_consumption_cost(
    assumptions: ResolvedAssumptionSet,
    *,
    credits: float | None = None,
    dbus: float | None = None,
) -> float | None:
    """
    Price Snowflake credits and Databricks DBUs with the cost-rate constants.

    Returns None when neither quantity is available.
    """

    credit_count = _finite_or_none(credits)
    dbu_count = _finite_or_none(dbus)
    if credit_count is None and dbu_count is None:
        return None

    total = 0.0
    if credit_count is not None:
        total += max(0.0, credit_count) * assumptions["cost_snowflake"]
    if dbu_count is not None:
        total += max(0.0, dbu_count) * assumptions["cost_databricks"]
    return total
