"""
tests/test_api_routers.py

HTTP-level tests for the workload ingestion and assumption routers.

Services are wired to in-memory fakes through ``dependency_overrides``.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Sequence

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.api.dependencies import get_assumption_service, get_workload_ingestion_service
from app.api.routers import assumptions_router, workload_ingestion_router
from app.services.assumption_service import AssumptionService
from app.services.workload_ingestion_service import WorkloadIngestionService
from metrics.assumptions import AssumptionResolver, AssumptionStoreError
from metrics.reference_data import REFERENCE_CONSTANTS, validate_override

CSV_BODY = (
    b"workload_id,workload_name,provider,region,instance_type,vcpus,runtime_hours,avg_cpu_utilization,cost_usd\n"
    b"w-1,trainer,AWS,us-west-2,p3.2xlarge,8,24,78,120.50\n"
)


class RecordingStore:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.saved = 0

    def save_ingestion(self, *, dataset: Any, workloads: Sequence[Any], metrics: Any) -> None:
        if self.error is not None:
            raise self.error
        self.saved += 1


class InMemoryAssumptionRepository:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.rows: dict[tuple[str, str], SimpleNamespace] = {}

    def get(self, team_id: str) -> dict[str, dict[str, Any]] | None:
        document = {
            name: {"value": row.value, "source_label": row.source_label}
            for (team, name), row in self.rows.items()
            if team == team_id
        }
        return document or None

    def set_override(
        self,
        *,
        team_id: str,
        constant_name: str,
        value: Any,
        source_label: str | None = None,
    ) -> SimpleNamespace:
        validated = validate_override(constant_name, value)
        if self.fail:
            raise AssumptionStoreError("override table unreachable")
        row = SimpleNamespace(value=validated, source_label=source_label)
        self.rows[(team_id, constant_name)] = row
        return row

    def clear_override(self, *, team_id: str, constant_name: str) -> bool:
        return self.rows.pop((team_id, constant_name), None) is not None


def _build_client(
    *,
    store: RecordingStore | None = None,
    repository: InMemoryAssumptionRepository | None = None,
) -> TestClient:
    store = store or RecordingStore()
    repository = repository or InMemoryAssumptionRepository()

    app = FastAPI()
    app.include_router(workload_ingestion_router)
    app.include_router(assumptions_router)
    app.dependency_overrides[get_workload_ingestion_service] = lambda: WorkloadIngestionService(
        store=store,
        assumption_resolver=AssumptionResolver(repository),
    )
    app.dependency_overrides[get_assumption_service] = lambda: AssumptionService(repository=repository)
    return TestClient(app)


@pytest.fixture()
def client() -> TestClient:
    return _build_client()


class TestWorkloadUploadEndpoint:
    def test_upload_returns_results_and_summary(self, client: TestClient) -> None:
        response = client.post(
            "/teams/team-1/workload-uploads",
            files={"file": ("workloads.csv", CSV_BODY, "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["dataset_summary"]["workload_count"] == 1
        assert body["dataset_summary"]["source_type"] == "canonical"
        (row,) = body["workload_results"]
        assert row["name"] == "trainer"
        assert row["provider"] == "aws"
        assert row["energy_kwh"] == pytest.approx(6.374)
        assert row["carbon_kg"] == pytest.approx(0.746)
        assert row["confidence_score"] == 100
        assert body["row_issues"] == []

    def test_non_csv_upload_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/teams/team-1/workload-uploads",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed."

    def test_empty_csv_is_bad_request(self, client: TestClient) -> None:
        response = client.post(
            "/teams/team-1/workload-uploads",
            files={"file": ("empty.csv", b"", "text/csv")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "CSV header row is missing."

    def test_persistence_failure_is_server_error(self) -> None:
        client = _build_client(store=RecordingStore(error=OperationalError("INSERT", {}, Exception("db down"))))

        response = client.post(
            "/teams/team-1/workload-uploads",
            files={"file": ("workloads.csv", CSV_BODY, "text/csv")},
        )

        assert response.status_code == 500

    def test_overlong_team_id_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            f"/teams/{'t' * 65}/workload-uploads",
            files={"file": ("workloads.csv", CSV_BODY, "text/csv")},
        )
        assert response.status_code == 422

    def test_preview_reports_mappings(self, client: TestClient) -> None:
        response = client.post(
            "/workload-uploads/preview",
            files={"file": ("workloads.csv", CSV_BODY, "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["source_type"] == "canonical"
        targets = {mapping["target_field"] for mapping in body["mappings"]}
        assert {"name", "region", "cpu_utilization", "cost"} <= targets


class TestAssumptionEndpoints:
    def test_list_returns_every_constant(self, client: TestClient) -> None:
        response = client.get("/teams/team-1/assumptions")

        assert response.status_code == 200
        body = response.json()
        assert body["team_id"] == "team-1"
        assert body["degraded"] is False
        assert len(body["assumptions"]) == len(REFERENCE_CONSTANTS)

    def test_put_override_then_list(self, client: TestClient) -> None:
        response = client.put(
            "/teams/team-1/assumptions/pue_aws",
            json={"value": 1.4, "source_label": "Facility audit"},
        )

        assert response.status_code == 200
        assert response.json()["value"] == pytest.approx(1.4)
        assert response.json()["overridden"] is True

        listed = client.get("/teams/team-1/assumptions").json()["assumptions"]
        pue = next(item for item in listed if item["name"] == "pue_aws")
        assert pue["value"] == pytest.approx(1.4)
        assert pue["source_label"] == "Facility audit"

    def test_out_of_range_override_is_bad_request(self, client: TestClient) -> None:
        response = client.put("/teams/team-1/assumptions/pue_aws", json={"value": 5})

        assert response.status_code == 400
        assert response.json()["detail"] == {
            "message": "PUE must be between 1.0 and 3.0.",
            "constant_name": "pue_aws",
            "value": 5.0,
        }

    def test_unknown_constant_is_bad_request(self, client: TestClient) -> None:
        response = client.put("/teams/team-1/assumptions/pue_mars", json={"value": 1.2})
        assert response.status_code == 400

    def test_storage_failure_is_service_unavailable(self) -> None:
        client = _build_client(repository=InMemoryAssumptionRepository(fail=True))

        response = client.put("/teams/team-1/assumptions/pue_aws", json={"value": 1.4})

        assert response.status_code == 503

    def test_delete_resets_override(self, client: TestClient) -> None:
        client.put("/teams/team-1/assumptions/util_cpu", json={"value": 30})

        response = client.delete("/teams/team-1/assumptions/util_cpu")

        assert response.status_code == 204
        listed = client.get("/teams/team-1/assumptions").json()["assumptions"]
        util = next(item for item in listed if item["name"] == "util_cpu")
        assert util["overridden"] is False
        assert util["value"] == 50.0
