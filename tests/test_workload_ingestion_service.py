"""
tests/test_workload_ingestion_service.py

Pytest tests for WorkloadIngestionService.

The store and override storage are in-memory fakes; no database is used.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Sequence

import pytest
from fastapi import UploadFile
from sqlalchemy.exc import OperationalError

from app.domain.workload import DatasetMetricWrite, DatasetWrite, WorkloadRecordWrite
from app.mappers.schema_detector import SourceSchema
from app.services.workload_ingestion_service import (
    ASSUMPTIONS_DEFAULT,
    ASSUMPTIONS_DEGRADED,
    ASSUMPTIONS_TEAM_OVERRIDES,
    WorkloadIngestionService,
    WorkloadPersistenceError,
    WorkloadUploadError,
)
from detection.provider_detection import DetectionMethod
from metrics.assumptions import AssumptionResolver, AssumptionStoreError

CANONICAL_CSV = (
    "workload_id,workload_name,provider,region,instance_type,vcpus,runtime_hours,avg_cpu_utilization,cost_usd\n"
    "w-1,trainer,AWS,us-west-2,p3.2xlarge,8,24,78,120.50\n"
    "w-2,,GCP,us-central1,n1-standard-4,4,10,,30\n"
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeWorkloadStore:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def save_ingestion(
        self,
        *,
        dataset: DatasetWrite,
        workloads: Sequence[WorkloadRecordWrite],
        metrics: DatasetMetricWrite,
    ) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append({"dataset": dataset, "workloads": list(workloads), "metrics": metrics})

    @property
    def dataset(self) -> DatasetWrite:
        return self.calls[-1]["dataset"]

    @property
    def workloads(self) -> list[WorkloadRecordWrite]:
        return self.calls[-1]["workloads"]

    @property
    def metrics(self) -> DatasetMetricWrite:
        return self.calls[-1]["metrics"]


class FakeOverrideStore:
    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self.documents = documents or {}

    def get(self, team_id: str) -> dict[str, Any] | None:
        return self.documents.get(team_id)


class BrokenOverrideStore:
    def get(self, team_id: str) -> dict[str, Any] | None:
        raise AssumptionStoreError("override table unreachable")


def _upload(content: str | bytes, filename: str = "workloads.csv") -> UploadFile:
    data = content.encode("utf-8") if isinstance(content, str) else content
    return UploadFile(file=io.BytesIO(data), filename=filename)


def _uniform_csv(rows: int) -> str:
    lines = ["workload_id,workload_name,provider,region,instance_type,vcpus,runtime_hours,avg_cpu_utilization,cost_usd"]
    lines += [f"w-{i},job-{i},aws,us-east-1,m5.large,2,1,50,1.00" for i in range(rows)]
    return "\n".join(lines) + "\n"


@pytest.fixture()
def store() -> FakeWorkloadStore:
    return FakeWorkloadStore()


@pytest.fixture()
def service(store: FakeWorkloadStore) -> WorkloadIngestionService:
    return WorkloadIngestionService(
        store=store,
        assumption_resolver=AssumptionResolver(FakeOverrideStore()),
    )


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestIngestCanonicalCsv:
    def test_calculates_every_row(self, service: WorkloadIngestionService) -> None:
        result = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1")

        first, second = result.workload_results
        assert first.row_number == 2
        assert first.name == "trainer"
        assert first.detection.provider == "aws"
        assert first.detection.method == DetectionMethod.EXPLICIT
        assert first.metrics.energy_kwh == pytest.approx(6.374)
        assert first.metrics.carbon_kg == pytest.approx(0.746)
        assert first.metrics.confidence_score == 100
        assert first.cost == pytest.approx(120.5)

        assert second.row_number == 3
        assert second.name == "w-2"
        assert second.detection.provider == "gcp"
        assert second.metrics.energy_kwh == pytest.approx(0.22)
        assert second.metrics.carbon_kg == pytest.approx(0.074)
        assert second.metrics.confidence_score == 80

    def test_billing_provider_labels_are_explicit(self, service: WorkloadIngestionService) -> None:
        content = (
            "workload_id,provider,region,runtime_hours,vcpus,avg_cpu_utilization\n"
            "w1,Amazon EC2,Oregon,10,4,50\n"
        )

        (row,) = service.ingest(upload_file=_upload(content), team_id="team-1").workload_results

        assert row.detection.provider == "aws"
        assert row.detection.method == DetectionMethod.EXPLICIT
        assert row.detection.region == "us-west-2"
        # 40 W * 50% * 10 h * 1.135 PUE, at 117 gCO2/kWh
        assert row.metrics.energy_kwh == pytest.approx(0.227)
        assert row.metrics.carbon_kg == pytest.approx(0.027)
        assert row.metrics.confidence_score == 90

    def test_summary_totals(self, service: WorkloadIngestionService) -> None:
        summary = service.ingest(
            upload_file=_upload(CANONICAL_CSV),
            team_id="team-1",
            file_name="october.csv",
        ).dataset_summary

        assert summary.team_id == "team-1"
        assert summary.file_name == "october.csv"
        assert summary.source_type == SourceSchema.CANONICAL
        assert summary.workload_count == 2
        assert summary.rows_persisted == 2
        assert summary.total_cost == pytest.approx(150.5)
        assert summary.total_energy_kwh == pytest.approx(6.59)
        assert summary.total_carbon_kg == pytest.approx(0.82)
        assert not summary.assumptions_degraded

    def test_writes_one_consistent_dataset(
        self, service: WorkloadIngestionService, store: FakeWorkloadStore
    ) -> None:
        summary = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1").dataset_summary

        assert len(store.calls) == 1
        assert store.dataset.dataset_id == summary.dataset_id
        assert store.dataset.file_name == "workloads.csv"
        assert store.dataset.row_count == 2
        assert store.dataset.assumption_source == ASSUMPTIONS_DEFAULT
        assert {m["target_field"] for m in store.dataset.column_mappings} >= {"name", "cost", "cpu_utilization"}
        assert all(w.dataset_id == summary.dataset_id for w in store.workloads)
        assert store.workloads[0].provider == "aws"
        assert store.workloads[0].region == "us-west-2"
        assert store.workloads[0].confidence == 100
        assert store.workloads[0].detection_method == DetectionMethod.EXPLICIT
        assert store.metrics.workload_count == 2
        assert store.metrics.energy_kwh == summary.total_energy_kwh

    def test_each_upload_gets_a_new_dataset_id(self, service: WorkloadIngestionService) -> None:
        first = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1")
        second = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1")
        assert first.dataset_summary.dataset_id != second.dataset_summary.dataset_id


class TestRowLimits:
    def test_cap_limits_persisted_rows_but_aggregates_all(self, store: FakeWorkloadStore) -> None:
        service = WorkloadIngestionService(
            store=store,
            assumption_resolver=AssumptionResolver(),
            persist_row_limit=2,
        )

        result = service.ingest(upload_file=_upload(_uniform_csv(5)), team_id="team-1")

        assert len(result.workload_results) == 5
        assert [r.persisted for r in result.workload_results] == [True, True, False, False, False]
        assert result.dataset_summary.workload_count == 5
        assert result.dataset_summary.rows_persisted == 2
        assert result.dataset_summary.total_cost == pytest.approx(5.0)
        assert len(store.workloads) == 2
        assert store.metrics.workload_count == 5

    def test_cap_can_also_limit_aggregation(self, store: FakeWorkloadStore) -> None:
        service = WorkloadIngestionService(
            store=store,
            assumption_resolver=AssumptionResolver(),
            persist_row_limit=2,
            aggregate_all_rows=False,
        )

        summary = service.ingest(upload_file=_upload(_uniform_csv(5)), team_id="team-1").dataset_summary

        assert summary.workload_count == 5
        assert summary.total_cost == pytest.approx(2.0)
        assert store.metrics.workload_count == 2

    def test_row_issues_are_bounded(self, store: FakeWorkloadStore) -> None:
        service = WorkloadIngestionService(
            store=store,
            assumption_resolver=AssumptionResolver(),
            max_row_issues=1,
        )
        csv_text = "workload_id,vcpus,runtime_hours\nw-1,lots,soon\nw-2,many,1\n"

        result = service.ingest(upload_file=_upload(csv_text), team_id="team-1")

        assert len(result.row_issues) == 1
        assert result.row_issues[0].row_number == 2
        assert result.dataset_summary.workload_count == 2


# ---------------------------------------------------------------------------
# CSV shape tolerance
# ---------------------------------------------------------------------------


class TestCsvShape:
    def test_bom_blank_lines_and_ragged_rows(self, service: WorkloadIngestionService) -> None:
        csv_text = "\ufeffworkload_id,workload_name,region\nw-1,alpha\n\n,,\nw-2,beta,eu-west-1,extra\n"

        result = service.ingest(upload_file=_upload(csv_text), team_id="team-1")

        assert result.dataset_summary.source_type == SourceSchema.CANONICAL
        assert [r.name for r in result.workload_results] == ["alpha", "beta"]
        assert [r.row_number for r in result.workload_results] == [2, 5]
        alpha, beta = result.workload_results
        assert alpha.record.region is None
        assert beta.detection.method == DetectionMethod.REGION_PATTERN
        assert beta.record.region == "eu-west-1"

    def test_header_only_file_creates_empty_dataset(
        self, service: WorkloadIngestionService, store: FakeWorkloadStore
    ) -> None:
        result = service.ingest(upload_file=_upload("workload_id,region\n"), team_id="team-1")

        assert result.workload_results == []
        assert result.dataset_summary.total_energy_kwh == 0
        assert store.workloads == []

    @pytest.mark.parametrize("content", [b"", b"\n\n", b" , \n"])
    def test_missing_header_is_rejected(self, service: WorkloadIngestionService, content: bytes) -> None:
        with pytest.raises(WorkloadUploadError, match="header"):
            service.ingest(upload_file=_upload(content), team_id="team-1")

    def test_non_utf8_is_rejected(self, service: WorkloadIngestionService, store: FakeWorkloadStore) -> None:
        content = "workload_id,workload_name\nw-1,caf\xe9\n".encode("latin-1")

        with pytest.raises(WorkloadUploadError, match="UTF-8"):
            service.ingest(upload_file=_upload(content), team_id="team-1")
        assert store.calls == []


# ---------------------------------------------------------------------------
# Assumptions
# ---------------------------------------------------------------------------


class TestAssumptions:
    def test_team_overrides_apply(self, store: FakeWorkloadStore) -> None:
        overrides = FakeOverrideStore({"team-1": {"pue_aws": {"value": 2.0, "source_label": "Facility audit"}}})
        service = WorkloadIngestionService(store=store, assumption_resolver=AssumptionResolver(overrides))

        result = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1")

        assert result.workload_results[0].metrics.energy_kwh == pytest.approx(11.232)
        assert store.dataset.assumption_source == ASSUMPTIONS_TEAM_OVERRIDES

    def test_other_teams_keep_defaults(self, store: FakeWorkloadStore) -> None:
        overrides = FakeOverrideStore({"team-1": {"pue_aws": {"value": 2.0}}})
        service = WorkloadIngestionService(store=store, assumption_resolver=AssumptionResolver(overrides))

        result = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-2")

        assert result.workload_results[0].metrics.energy_kwh == pytest.approx(6.374)

    def test_storage_failure_degrades_to_defaults(
        self, store: FakeWorkloadStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        service = WorkloadIngestionService(
            store=store,
            assumption_resolver=AssumptionResolver(BrokenOverrideStore()),
        )

        with caplog.at_level(logging.WARNING, logger="app.services.workload_ingestion_service"):
            result = service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1")

        assert result.workload_results[0].metrics.energy_kwh == pytest.approx(6.374)
        assert result.dataset_summary.assumptions_degraded
        assert store.dataset.assumption_source == ASSUMPTIONS_DEGRADED
        assert any("assumption_overrides_unavailable" in record.getMessage() for record in caplog.records)


# ---------------------------------------------------------------------------
# Provider exports and persistence
# ---------------------------------------------------------------------------


class TestProviderExports:
    def test_snowflake_cost_comes_from_credits(self, service: WorkloadIngestionService) -> None:
        csv_text = (
            "QUERY_ID,WAREHOUSE_NAME,WAREHOUSE_SIZE,TOTAL_ELAPSED_TIME,CREDITS_USED_CLOUD_SERVICES\n"
            "q-1,ANALYTICS_WH,SMALL,7200000,2\n"
        )

        result = service.ingest(upload_file=_upload(csv_text), team_id="team-1")

        (row,) = result.workload_results
        assert result.dataset_summary.source_type == SourceSchema.SNOWFLAKE_QUERY_HISTORY
        assert row.name == "ANALYTICS_WH"
        assert row.cost == pytest.approx(6.0)
        assert row.metrics.energy_kwh == pytest.approx(0.063)
        assert result.dataset_summary.total_cost == pytest.approx(6.0)

    def test_aws_cur_implies_provider(self, service: WorkloadIngestionService) -> None:
        csv_text = (
            "lineItem/UnblendedCost,lineItem/UsageAmount,product/instanceType,product/region\n"
            "0.50,3,db.r5.large,us-east-2\n"
        )

        (row,) = service.ingest(upload_file=_upload(csv_text), team_id="team-1").workload_results

        assert row.detection.provider == "aws"
        assert row.detection.method == DetectionMethod.EXPLICIT
        assert row.record.runtime_hours == 3.0
        assert row.cost == pytest.approx(0.5)


class TestPersistence:
    def test_store_failure_raises_persistence_error(self) -> None:
        service = WorkloadIngestionService(
            store=FakeWorkloadStore(error=OperationalError("INSERT", {}, Exception("db down"))),
            assumption_resolver=AssumptionResolver(),
        )

        with pytest.raises(WorkloadPersistenceError):
            service.ingest(upload_file=_upload(CANONICAL_CSV), team_id="team-1")


class TestPreview:
    def test_preview_detects_without_persisting(
        self, service: WorkloadIngestionService, store: FakeWorkloadStore
    ) -> None:
        detection = service.preview(upload_file=_upload(CANONICAL_CSV))

        assert detection.source_type == SourceSchema.CANONICAL
        assert "cpu_utilization" in detection.target_fields()
        assert store.calls == []

    def test_preview_rejects_missing_header(self, service: WorkloadIngestionService) -> None:
        with pytest.raises(WorkloadUploadError):
            service.preview(upload_file=_upload(b""))
