"""
app/mappers/schema_detector.py

Schema detection for uploaded workload CSVs.

Resolution order, first match wins:
    1. known provider export (AWS CUR, GCP billing, Snowflake, Databricks)
    2. this system's own canonical export format
    3. generic keyword heuristics, value sniffing, then identity
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Pattern, Sequence

from detection.provider_detection import looks_like_region


class SourceSchema:
    """Detected source layouts."""

    AWS_CUR = "aws_cur"
    GCP_BILLING = "gcp_billing"
    SNOWFLAKE_QUERY_HISTORY = "snowflake_query_history"
    DATABRICKS_USAGE = "databricks_usage"
    CANONICAL = "canonical"
    GENERIC = "generic"


class MatchStrategy:
    """How one column mapping was decided."""

    KNOWN_PROVIDER = "known_provider"
    CANONICAL = "canonical"
    KEYWORD = "keyword"
    VALUE_SNIFF = "value_sniff"
    IDENTITY = "identity"


@dataclass(frozen=True)
class ColumnMapping:
    """
    One source column mapped onto a normalized field.
    """

    source_column: str
    target_field: str
    confidence: float
    strategy: str
    column_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_column": self.source_column,
            "target_field": self.target_field,
            "confidence": self.confidence,
            "strategy": self.strategy,
        }


@dataclass(frozen=True)
class SchemaDetection:
    """
    Final resolved mapping metadata for one upload.
    """

    source_type: str
    mappings: tuple[ColumnMapping, ...]
    implied_provider: str | None = None

    @property
    def average_confidence(self) -> float:
        if not self.mappings:
            return 0.0
        return sum(mapping.confidence for mapping in self.mappings) / len(self.mappings)

    def target_fields(self) -> set[str]:
        return {mapping.target_field for mapping in self.mappings}


@dataclass(frozen=True)
class KnownProviderSchema:
    """
    Hardcoded header table for a provider's native export.
    """

    source_type: str
    implied_provider: str
    trigger: Callable[[frozenset[str]], bool]
    field_map: Mapping[str, str]


KNOWN_PROVIDER_SCHEMAS: tuple[KnownProviderSchema, ...] = (
    KnownProviderSchema(
        source_type=SourceSchema.AWS_CUR,
        implied_provider="aws",
        trigger=lambda headers: any(h.startswith(("lineitem/", "product/")) for h in headers),
        field_map={
            "lineitem/usageaccountid": "account_id",
            "lineitem/productcode": "service",
            "lineitem/blendedcost": "cost",
            "lineitem/unblendedcost": "unblended_cost",
            "lineitem/usageamount": "usage_amount",
            "lineitem/usagetype": "usage_type",
            "lineitem/usagestartdate": "start_time",
            "lineitem/usageenddate": "end_time",
            "product/instancetype": "instance_type",
            "product/region": "region",
            "resourcetags/user:name": "name",
        },
    ),
    KnownProviderSchema(
        source_type=SourceSchema.GCP_BILLING,
        implied_provider="gcp",
        trigger=lambda headers: bool(
            headers & {"service.description", "sku.description", "location.region"}
        ),
        field_map={
            "billing_account_id": "account_id",
            "service.description": "service",
            "sku.description": "sku",
            "cost": "cost",
            "usage.amount": "usage_amount",
            "usage.unit": "usage_unit",
            "usage_start_time": "start_time",
            "usage_end_time": "end_time",
            "location.region": "region",
            "project.id": "project_id",
        },
    ),
    KnownProviderSchema(
        source_type=SourceSchema.SNOWFLAKE_QUERY_HISTORY,
        implied_provider="snowflake",
        trigger=lambda headers: {"query_id", "warehouse_name"} <= headers,
        field_map={
            "query_id": "workload_id",
            "warehouse_name": "name",
            "warehouse_size": "warehouse_size",
            "total_elapsed_time": "elapsed_ms",
            "credits_used_cloud_services": "credits",
            "start_time": "start_time",
            "end_time": "end_time",
        },
    ),
    KnownProviderSchema(
        source_type=SourceSchema.DATABRICKS_USAGE,
        implied_provider="databricks",
        trigger=lambda headers: {"workspace_id", "sku_name", "usage_quantity"} <= headers,
        field_map={
            "workspace_id": "account_id",
            "sku_name": "service",
            "usage_quantity": "dbus",
            "usage_date": "start_time",
            "cluster_id": "name",
            "node_type": "instance_type",
        },
    ),
)

CANONICAL_TRIGGER_HEADERS = frozenset({"workload_id", "workload_name"})

CANONICAL_FIELD_MAP: dict[str, tuple[str, float]] = {
    "workload_id": ("workload_id", 1.0),
    "workload_name": ("name", 1.0),
    "provider": ("provider", 1.0),
    "region": ("region", 1.0),
    "instance_type": ("instance_type", 1.0),
    "vcpus": ("vcpus", 1.0),
    "memory_gb": ("memory_gb", 1.0),
    "runtime_hours": ("runtime_hours", 1.0),
    "gpu_model": ("gpu_model", 1.0),
    "start_time": ("start_time", 1.0),
    "end_time": ("end_time", 1.0),
    "avg_cpu_utilization": ("cpu_utilization", 0.95),
    "avg_memory_utilization": ("memory_utilization", 0.95),
    "cost_usd": ("cost", 0.95),
}

GENERIC_KEYWORD_RULES: tuple[tuple[Pattern[str], str, float], ...] = (
    (re.compile(r"cost|price"), "cost", 0.9),
    (re.compile(r"region"), "region", 0.95),
    (re.compile(r"instance"), "instance_type", 0.9),
    (re.compile(r"service|product"), "service", 0.85),
    (re.compile(r"vcpu|cpus|cores"), "vcpus", 0.8),
    (re.compile(r"mem(ory)?[\s_\-]*util"), "memory_utilization", 0.75),
    (re.compile(r"gpu[\s_\-]*util"), "gpu_utilization", 0.75),
    (re.compile(r"util"), "cpu_utilization", 0.75),
    (re.compile(r"runtime|hours|duration"), "runtime_hours", 0.8),
    (re.compile(r"provider|cloud"), "provider", 0.8),
    (re.compile(r"gpu|accelerator"), "gpu_model", 0.75),
    (re.compile(r"memory|(?<![a-z])ram(?![a-z])"), "memory_gb", 0.75),
    (re.compile(r"name"), "name", 0.7),
)

VALUE_SNIFF_REGION_CONFIDENCE = 0.6
IDENTITY_CONFIDENCE = 0.5


def slugify_header(header: str, index: int) -> str:
    """
    Lowercase and replace every non-alphanumeric character with ``_``.
    """

    slug = re.sub(r"[^a-z0-9]", "_", header.strip().lower())
    return slug or f"column_{index}"


class SchemaDetector:
    """
    Maps arbitrary CSV headers onto normalized workload fields.
    """

    def __init__(
        self,
        *,
        known_schemas: Sequence[KnownProviderSchema] | None = None,
        sample_size: int = 5,
    ) -> None:
        self._known_schemas = tuple(known_schemas if known_schemas is not None else KNOWN_PROVIDER_SCHEMAS)
        self._sample_size = max(0, sample_size)

    @property
    def sample_size(self) -> int:
        return self._sample_size

    def detect(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[Sequence[str]] | None = None,
    ) -> SchemaDetection:
        """
        Resolve column mappings from headers and a few sample rows.

        Never raises for unexpected headers; anything unrecognized falls
        through to the identity mapping.
        """

        cleaned = [str(header).strip() if header is not None else "" for header in headers]
        lowered = frozenset(header.lower() for header in cleaned if header)
        samples = list(sample_rows or [])[: self._sample_size]

        for schema in self._known_schemas:
            if schema.trigger(lowered):
                return self._map_known_provider(schema, cleaned)

        if lowered & CANONICAL_TRIGGER_HEADERS:
            return self._map_canonical(cleaned, samples)

        return SchemaDetection(
            source_type=SourceSchema.GENERIC,
            mappings=tuple(
                self._map_generic_column(header, index, samples) for index, header in enumerate(cleaned)
            ),
        )

    def map_row(
        self,
        *,
        raw_row: Sequence[str | None],
        detection: SchemaDetection,
    ) -> dict[str, str]:
        """
        Map one source CSV row into normalized raw field values.

        When several columns share a target, the first non-blank value wins.
        Blank values are omitted.
        """

        mapped: dict[str, str] = {}
        for mapping in detection.mappings:
            if mapping.target_field in mapped:
                continue
            if mapping.column_index >= len(raw_row):
                continue
            value = raw_row[mapping.column_index]
            if value is None or not str(value).strip():
                continue
            mapped[mapping.target_field] = str(value).strip()
        return mapped

    @staticmethod
    def _map_known_provider(schema: KnownProviderSchema, headers: Sequence[str]) -> SchemaDetection:
        mappings = [
            ColumnMapping(
                source_column=header,
                target_field=schema.field_map[header.lower()],
                confidence=1.0,
                strategy=MatchStrategy.KNOWN_PROVIDER,
                column_index=index,
            )
            for index, header in enumerate(headers)
            if header.lower() in schema.field_map
        ]
        return SchemaDetection(
            source_type=schema.source_type,
            mappings=tuple(mappings),
            implied_provider=schema.implied_provider,
        )

    def _map_canonical(
        self,
        headers: Sequence[str],
        samples: Sequence[Sequence[str]],
    ) -> SchemaDetection:
        mappings: list[ColumnMapping] = []
        for index, header in enumerate(headers):
            known = CANONICAL_FIELD_MAP.get(header.lower())
            if known is None:
                mappings.append(self._map_generic_column(header, index, samples))
                continue
            target, confidence = known
            mappings.append(
                ColumnMapping(
                    source_column=header,
                    target_field=target,
                    confidence=confidence,
                    strategy=MatchStrategy.CANONICAL,
                    column_index=index,
                )
            )
        return SchemaDetection(source_type=SourceSchema.CANONICAL, mappings=tuple(mappings))

    def _map_generic_column(
        self,
        header: str,
        index: int,
        samples: Sequence[Sequence[str]],
    ) -> ColumnMapping:
        lowered = header.lower()
        if lowered:
            for pattern, target, confidence in GENERIC_KEYWORD_RULES:
                if pattern.search(lowered):
                    return ColumnMapping(
                        source_column=header,
                        target_field=target,
                        confidence=confidence,
                        strategy=MatchStrategy.KEYWORD,
                        column_index=index,
                    )

        if self._samples_look_like_regions(index, samples):
            return ColumnMapping(
                source_column=header,
                target_field="region",
                confidence=VALUE_SNIFF_REGION_CONFIDENCE,
                strategy=MatchStrategy.VALUE_SNIFF,
                column_index=index,
            )

        return ColumnMapping(
            source_column=header,
            target_field=slugify_header(header, index),
            confidence=IDENTITY_CONFIDENCE,
            strategy=MatchStrategy.IDENTITY,
            column_index=index,
        )

    @staticmethod
    def _samples_look_like_regions(index: int, samples: Sequence[Sequence[str]]) -> bool:
        values = [
            str(row[index]).strip()
            for row in samples
            if index < len(row) and row[index] is not None and str(row[index]).strip()
        ]
        return bool(values) and all(looks_like_region(value) for value in values)
