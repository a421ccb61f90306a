"""
detection/provider_detection.py

Provider and region inference from partial workload signals.

Every classifier is an ordered table of ``(predicate, result)`` rules;
the first matching rule wins. Unknown inputs never raise.

Explicit provider values match by keyword, so billing labels such as
"Amazon EC2" resolve to ``aws``. Besides the explicit, instance_pattern,
gpu_pattern and fallback methods, detection reports ``region_pattern``
when only the region code shape identifies the provider; it sits between
the instance and GPU tiers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern


class CloudProvider:
    """Canonical provider identifiers."""

    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    ON_PREM = "on_prem"
    UNKNOWN = "unknown"


class DetectionMethod:
    """Evidence tier used to infer the provider, strongest first."""

    EXPLICIT = "explicit"
    INSTANCE_PATTERN = "instance_pattern"
    REGION_PATTERN = "region_pattern"
    GPU_PATTERN = "gpu_pattern"
    FALLBACK = "fallback"


UNKNOWN_REGION = "unknown"

_METHOD_CONFIDENCE: dict[str, float] = {
    DetectionMethod.EXPLICIT: 1.0,
    DetectionMethod.INSTANCE_PATTERN: 0.85,
    DetectionMethod.REGION_PATTERN: 0.9,
    DetectionMethod.GPU_PATTERN: 0.6,
    DetectionMethod.FALLBACK: 0.0,
}


@dataclass(frozen=True)
class DetectionResult:
    """
    How provider and region were inferred for one workload.
    """

    provider: str
    region: str
    method: str
    confidence: float


_PROVIDER_ALIASES: dict[str, str] = {
    "aws": CloudProvider.AWS,
    "amazon": CloudProvider.AWS,
    "amazon web services": CloudProvider.AWS,
    "gcp": CloudProvider.GCP,
    "google": CloudProvider.GCP,
    "google cloud": CloudProvider.GCP,
    "google cloud platform": CloudProvider.GCP,
    "azure": CloudProvider.AZURE,
    "microsoft": CloudProvider.AZURE,
    "microsoft azure": CloudProvider.AZURE,
    "on prem": CloudProvider.ON_PREM,
    "onprem": CloudProvider.ON_PREM,
    "on premise": CloudProvider.ON_PREM,
    "on premises": CloudProvider.ON_PREM,
}

# Substring keywords, checked in order after exact aliases ("Amazon EC2").
_PROVIDER_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("aws", "amazon"), CloudProvider.AWS),
    (("gcp", "google"), CloudProvider.GCP),
    (("azure", "microsoft"), CloudProvider.AZURE),
    (("on prem", "onprem", "on premise"), CloudProvider.ON_PREM),
)

INSTANCE_RULES: tuple[tuple[Pattern[str], str], ...] = (
    # m5.xlarge, c6i.2xlarge, p4d.24xlarge, g4dn.xlarge, inf2.xlarge
    (
        re.compile(r"^[a-z]{1,4}\d+[a-z-]*\.(nano|micro|small|medium|large|metal|\d*xlarge)$", re.I),
        CloudProvider.AWS,
    ),
    (re.compile(r"^(p[2-5]|g[3-6]|inf[1-2]|trn[1-2])[a-z]*\.", re.I), CloudProvider.AWS),
    # n1-standard-4, e2-micro, a2-highgpu-1g, n1-standard-4-nvidia-t4-1
    (re.compile(r"^(n[124]d?|e2|c[234]d?|m[1-3]|a[23]|g2|t2[ad])-[a-z]+(-\d+g?)?", re.I), CloudProvider.GCP),
    (re.compile(r"^custom-\d+-\d+", re.I), CloudProvider.GCP),
    # Standard_D4s_v3, Standard_NC6s_v3
    (re.compile(r"^(standard|basic)_[a-z]+\d+", re.I), CloudProvider.AZURE),
    (re.compile(r"^(bare-?metal|physical|on-?prem)", re.I), CloudProvider.ON_PREM),
)

_AZURE_GEOGRAPHIES = (
    "us|europe|asia|india|uk|japan|australia|brazil|canada|france|germany|"
    "norway|switzerland|uae|southafrica|sweden|korea|italy|poland|qatar"
)

REGION_RULES: tuple[tuple[Pattern[str], str], ...] = (
    (
        re.compile(
            r"^(us|eu|ap|sa|ca|me|af|il|mx)-(north|south|east|west|central|"
            r"northeast|southeast|southwest|northwest)-\d$"
        ),
        CloudProvider.AWS,
    ),
    (re.compile(r"^(us-gov|cn)-(north|south|east|west|northwest)-\d$"), CloudProvider.AWS),
    (
        re.compile(
            r"^(us|europe|asia|australia|southamerica|northamerica|me|africa)-"
            r"(north|south|east|west|central|northeast|southeast|southwest|northwest)\d+$"
        ),
        CloudProvider.GCP,
    ),
    (
        re.compile(
            rf"^(east|west|central|north|south|southcentral|northcentral|westcentral)"
            rf"({_AZURE_GEOGRAPHIES})\d?$"
        ),
        CloudProvider.AZURE,
    ),
    (
        re.compile(rf"^({_AZURE_GEOGRAPHIES})(east|west|north|south|central|westcentral|northcentral)\d?$"),
        CloudProvider.AZURE,
    ),
    (re.compile(r"^(datacenter|dc|colo|private)"), CloudProvider.ON_PREM),
)

# GPUs are sold by every provider; these hints only record where a model
# is most common.
GPU_RULES: tuple[tuple[str, str], ...] = (
    ("a100", CloudProvider.AWS),
    ("v100", CloudProvider.AWS),
    ("a10g", CloudProvider.AWS),
    ("t4", CloudProvider.GCP),
    ("k80", CloudProvider.GCP),
    ("p100", CloudProvider.GCP),
)

REGION_ALIASES: dict[str, dict[str, str]] = {
    CloudProvider.AWS: {
        "virginia": "us-east-1",
        "n. virginia": "us-east-1",
        "ohio": "us-east-2",
        "california": "us-west-1",
        "n. california": "us-west-1",
        "oregon": "us-west-2",
        "ireland": "eu-west-1",
        "london": "eu-west-2",
        "paris": "eu-west-3",
        "frankfurt": "eu-central-1",
        "stockholm": "eu-north-1",
        "mumbai": "ap-south-1",
        "tokyo": "ap-northeast-1",
        "seoul": "ap-northeast-2",
        "singapore": "ap-southeast-1",
        "sydney": "ap-southeast-2",
    },
    CloudProvider.GCP: {
        "iowa": "us-central1",
        "south carolina": "us-east1",
        "virginia": "us-east4",
        "oregon": "us-west1",
        "los angeles": "us-west2",
        "belgium": "europe-west1",
        "london": "europe-west2",
        "frankfurt": "europe-west3",
        "netherlands": "europe-west4",
        "finland": "europe-north1",
        "taiwan": "asia-east1",
        "tokyo": "asia-northeast1",
        "singapore": "asia-southeast1",
    },
    CloudProvider.AZURE: {
        "east us": "eastus",
        "east us 2": "eastus2",
        "west us": "westus",
        "west us 2": "westus2",
        "west europe": "westeurope",
        "north europe": "northeurope",
        "uk south": "uksouth",
        "france central": "francecentral",
        "germany west central": "germanywestcentral",
        "sweden central": "swedencentral",
    },
}

# us-east-1a -> us-east-1, us-central1-b -> us-central1
_ZONE_SUFFIX_RULES: tuple[Pattern[str], ...] = (
    re.compile(r"^([a-z]{2}(?:-gov)?-[a-z]+-\d)[a-z]$"),
    re.compile(r"^([a-z]+-[a-z]+\d+)-[a-f]$"),
)


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _canonical_provider(raw_provider: str | None) -> str | None:
    if _is_blank(raw_provider):
        return None
    key = " ".join(re.split(r"[\s_\-]+", str(raw_provider).strip().lower())).strip()
    if key in _PROVIDER_ALIASES:
        return _PROVIDER_ALIASES[key]
    for keywords, provider in _PROVIDER_KEYWORDS:
        if any(keyword in key for keyword in keywords):
            return provider
    return None


def _strip_zone(region: str) -> str:
    for pattern in _ZONE_SUFFIX_RULES:
        match = pattern.match(region)
        if match:
            return match.group(1)
    return region


def normalize_region(raw_region: str | None, provider: str | None) -> str:
    """
    Map a provider-specific region spelling to its canonical code.

    Unrecognized strings pass through lowercased; blank input or the
    literal ``unknown`` yields ``unknown``.
    """

    if _is_blank(raw_region):
        return UNKNOWN_REGION
    normalized = " ".join(str(raw_region).strip().lower().split())
    if normalized == UNKNOWN_REGION:
        return UNKNOWN_REGION

    aliases = REGION_ALIASES.get(provider or "", {})
    if normalized in aliases:
        return aliases[normalized]
    return _strip_zone(normalized)


def looks_like_region(value: str | None) -> bool:
    """Return True when *value* has the shape of a cloud region code."""

    if _is_blank(value):
        return False
    candidate = _strip_zone(str(value).strip().lower())
    return any(
        pattern.match(candidate)
        for pattern, provider in REGION_RULES
        if provider != CloudProvider.ON_PREM
    )


def provider_from_instance_type(instance_type: str | None) -> str | None:
    if _is_blank(instance_type):
        return None
    candidate = str(instance_type).strip()
    for pattern, provider in INSTANCE_RULES:
        if pattern.match(candidate):
            return provider
    return None


def provider_from_region(region: str | None) -> str | None:
    if _is_blank(region):
        return None
    candidate = _strip_zone(str(region).strip().lower())
    for pattern, provider in REGION_RULES:
        if pattern.match(candidate):
            return provider
    return None


def provider_from_gpu(gpu_model: str | None) -> str | None:
    if _is_blank(gpu_model):
        return None
    candidate = str(gpu_model).lower()
    for hint, provider in GPU_RULES:
        if hint in candidate:
            return provider
    return None


_DETECTION_CHAIN = (
    (DetectionMethod.INSTANCE_PATTERN, "instance_type", provider_from_instance_type),
    (DetectionMethod.REGION_PATTERN, "region", provider_from_region),
    (DetectionMethod.GPU_PATTERN, "gpu_model", provider_from_gpu),
)


def detect_provider(
    *,
    provider: str | None = None,
    region: str | None = None,
    instance_type: str | None = None,
    gpu_model: str | None = None,
) -> DetectionResult:
    """
    Infer provider and canonical region from whatever signals exist.

    Precedence: explicit provider field, instance-type naming convention,
    region code shape, GPU model hint, then ``unknown``.
    """

    explicit = _canonical_provider(provider)
    if explicit is not None:
        return _result(explicit, region, DetectionMethod.EXPLICIT)

    hints = {"instance_type": instance_type, "region": region, "gpu_model": gpu_model}
    for method, hint_name, classify in _DETECTION_CHAIN:
        detected = classify(hints[hint_name])
        if detected is not None:
            return _result(detected, region, method)

    return _result(CloudProvider.UNKNOWN, region, DetectionMethod.FALLBACK)


def _result(provider: str, raw_region: str | None, method: str) -> DetectionResult:
    return DetectionResult(
        provider=provider,
        region=normalize_region(raw_region, provider),
        method=method,
        confidence=_METHOD_CONFIDENCE[method],
    )
