"""
app/services/workload_ingestion_service.py

Service layer for workload CSV ingestion.

One upload runs as:

    1. read header + sample rows, detect the schema once
    2. resolve the team's assumptions once (defaults if storage fails)
    3. per row: map -> parse -> detect provider -> calculate
    4. hand dataset, workload rows and totals to the store as one write set

Only an unreadable file or a failed write reaches the caller as an error;
bad cell values degrade to defaults and lower confidence.
"""

from __future__ import annotations

import csv
import io
import itertools
import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Iterator, Protocol, Sequence

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_workload_ingestion_settings
from app.domain.workload import (
    DatasetMetricWrite,
    DatasetSummary,
    DatasetWrite,
    ParsedWorkloadRow,
    RowCoercionIssue,
    WorkloadIngestionResult,
    WorkloadRecordWrite,
    WorkloadResult,
)
from app.logging_utils import log_event
from app.mappers.schema_detector import SchemaDetection, SchemaDetector
from app.repositories.team_assumption_repository import TeamAssumptionRepository
from app.repositories.workload_repository import WorkloadRepository
from app.validators.workload_validator import WorkloadRowParser
from detection.provider_detection import UNKNOWN_REGION, detect_provider
from metrics.assumptions import AssumptionResolution, AssumptionResolver
from metrics.calculator import MetricsCalculator, estimate_consumption_cost

logger = logging.getLogger(__name__)

ASSUMPTIONS_DEFAULT = "defaults"
ASSUMPTIONS_TEAM_OVERRIDES = "team_overrides"
ASSUMPTIONS_DEGRADED = "defaults_storage_unavailable"


class WorkloadUploadError(ValueError):
    """
    Raised when the uploaded file cannot be read as a CSV with a header row.
    """


class WorkloadPersistenceError(RuntimeError):
    """
    Raised when the ingestion write set cannot be persisted.
    """


class WorkloadStore(Protocol):
    def save_ingestion(
        self,
        *,
        dataset: DatasetWrite,
        workloads: Sequence[WorkloadRecordWrite],
        metrics: DatasetMetricWrite,
    ) -> None:
        """
        Persist the dataset, its workload rows and its totals atomically.
        """
        ...


class WorkloadIngestionService:
    """
    Coordinates CSV parsing, schema detection, calculation, and persistence.
    """

    def __init__(
        self,
        *,
        store: WorkloadStore,
        assumption_resolver: AssumptionResolver,
        detector: SchemaDetector | None = None,
        row_parser: WorkloadRowParser | None = None,
        calculator: MetricsCalculator | None = None,
        persist_row_limit: int = 100,
        aggregate_all_rows: bool = True,
        max_row_issues: int = 500,
    ) -> None:
        self._store = store
        self._resolver = assumption_resolver
        self._detector = detector or SchemaDetector()
        self._row_parser = row_parser or WorkloadRowParser()
        self._calculator = calculator or MetricsCalculator()
        self._persist_row_limit = max(0, persist_row_limit)
        self._aggregate_all_rows = aggregate_all_rows
        self._max_row_issues = max(0, max_row_issues)

    def ingest(
        self,
        *,
        upload_file: UploadFile,
        team_id: str,
        file_name: str | None = None,
    ) -> WorkloadIngestionResult:
        """
        Stream a workload CSV, calculate every row, and persist one dataset.

        Args:
            upload_file: File to ingest.
            team_id:     Team whose assumption overrides apply.
            file_name:   Display name; defaults to the upload's filename.
        """

        dataset_id = str(uuid.uuid4())
        display_name = file_name or upload_file.filename or "upload.csv"

        resolution = self._resolve_assumptions(team_id)

        results: list[WorkloadResult] = []
        issues: list[RowCoercionIssue] = []
        workload_writes: list[WorkloadRecordWrite] = []
        workload_count = 0
        aggregated_count = 0
        total_cost = 0.0
        total_energy = 0.0
        total_carbon = 0.0

        with _open_csv(upload_file) as reader:
            try:
                headers = self._read_header(reader)
                rows = _iter_data_rows(reader, len(headers))
                sample = list(itertools.islice(rows, self._detector.sample_size))
                detection = self._detector.detect(headers, [row for _, row in sample])
                log_event(
                    logger,
                    logging.INFO,
                    "workload_schema_detected",
                    dataset_id=dataset_id,
                    source_type=detection.source_type,
                    mapping_confidence=round(detection.average_confidence, 4),
                    columns=len(headers),
                )

                for row_number, raw_row in itertools.chain(sample, rows):
                    parsed = self._row_parser.parse(
                        mapped_row=self._detector.map_row(raw_row=raw_row, detection=detection),
                        row_number=row_number,
                    )
                    self._record_issues(issues, parsed)

                    persisted = workload_count < self._persist_row_limit
                    result = self._calculate_row(
                        parsed=parsed,
                        detection=detection,
                        row_number=row_number,
                        persisted=persisted,
                        resolution=resolution,
                    )
                    results.append(result)
                    workload_count += 1

                    if persisted:
                        workload_writes.append(
                            self._to_workload_write(result, dataset_id=dataset_id, team_id=team_id)
                        )
                    if persisted or self._aggregate_all_rows:
                        aggregated_count += 1
                        total_energy += result.metrics.energy_kwh
                        total_carbon += result.metrics.carbon_kg
                        total_cost += result.cost or 0.0
            except UnicodeDecodeError as exc:
                raise WorkloadUploadError("CSV must be UTF-8 encoded.") from exc
            except csv.Error as exc:
                raise WorkloadUploadError(f"Invalid CSV format: {exc}") from exc

        mapping_confidence = round(detection.average_confidence, 4)
        dataset = DatasetWrite(
            dataset_id=dataset_id,
            team_id=team_id,
            file_name=display_name,
            source_type=detection.source_type,
            row_count=workload_count,
            column_mappings=[mapping.to_dict() for mapping in detection.mappings],
            mapping_confidence=mapping_confidence,
            assumption_source=self._assumption_source(resolution),
        )
        metrics = DatasetMetricWrite(
            dataset_id=dataset_id,
            team_id=team_id,
            workload_count=aggregated_count,
            cost=round(total_cost, 2),
            energy_kwh=round(total_energy, 2),
            carbon_kg=round(total_carbon, 2),
        )

        try:
            self._store.save_ingestion(dataset=dataset, workloads=workload_writes, metrics=metrics)
        except SQLAlchemyError as exc:
            log_event(
                logger,
                logging.ERROR,
                "workload_ingestion_persist_failed",
                dataset_id=dataset_id,
                team_id=team_id,
                error=str(exc),
            )
            raise WorkloadPersistenceError("Failed to persist workload dataset.") from exc

        summary = DatasetSummary(
            dataset_id=dataset_id,
            team_id=team_id,
            file_name=display_name,
            source_type=detection.source_type,
            workload_count=workload_count,
            rows_persisted=len(workload_writes),
            total_cost=metrics.cost,
            total_energy_kwh=metrics.energy_kwh,
            total_carbon_kg=metrics.carbon_kg,
            mapping_confidence=mapping_confidence,
            assumptions_degraded=resolution.degraded,
        )
        log_event(
            logger,
            logging.INFO,
            "workload_ingestion_completed",
            dataset_id=dataset_id,
            team_id=team_id,
            workload_count=workload_count,
            rows_persisted=summary.rows_persisted,
            energy_kwh=summary.total_energy_kwh,
            carbon_kg=summary.total_carbon_kg,
            row_issues=len(issues),
        )
        return WorkloadIngestionResult(
            dataset_summary=summary,
            workload_results=results,
            row_issues=issues,
        )

    def preview(self, *, upload_file: UploadFile) -> SchemaDetection:
        """
        Detect the column mapping without calculating or persisting.
        """

        with _open_csv(upload_file) as reader:
            try:
                headers = self._read_header(reader)
                rows = _iter_data_rows(reader, len(headers))
                sample = [row for _, row in itertools.islice(rows, self._detector.sample_size)]
            except UnicodeDecodeError as exc:
                raise WorkloadUploadError("CSV must be UTF-8 encoded.") from exc
            except csv.Error as exc:
                raise WorkloadUploadError(f"Invalid CSV format: {exc}") from exc
        return self._detector.detect(headers, sample)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_assumptions(self, team_id: str) -> AssumptionResolution:
        resolution = self._resolver.resolve(team_id)
        if resolution.error is not None:
            log_event(
                logger,
                logging.WARNING,
                "assumption_overrides_unavailable",
                team_id=team_id,
                error=str(resolution.error),
            )
        return resolution

    def _calculate_row(
        self,
        *,
        parsed: ParsedWorkloadRow,
        detection: SchemaDetection,
        row_number: int,
        persisted: bool,
        resolution: AssumptionResolution,
    ) -> WorkloadResult:
        record = parsed.record
        detected = detect_provider(
            provider=record.provider or detection.implied_provider,
            region=record.region,
            instance_type=record.instance_type,
            gpu_model=record.gpu_model,
        )
        normalized = replace(
            record,
            provider=detected.provider,
            region=None if detected.region == UNKNOWN_REGION else detected.region,
        )
        metrics = self._calculator.calculate(resolution.assumptions, normalized)

        cost = record.cost
        if cost is None:
            cost = estimate_consumption_cost(
                resolution.assumptions,
                credits=record.credits,
                dbus=record.dbus,
            )

        return WorkloadResult(
            row_number=row_number,
            name=parsed.display_name,
            detection=detected,
            metrics=metrics,
            record=normalized,
            cost=cost,
            persisted=persisted,
        )

    @staticmethod
    def _to_workload_write(result: WorkloadResult, *, dataset_id: str, team_id: str) -> WorkloadRecordWrite:
        record = result.record
        return WorkloadRecordWrite(
            dataset_id=dataset_id,
            team_id=team_id,
            name=result.name,
            provider=result.detection.provider,
            region=result.detection.region,
            instance_type=record.instance_type,
            vcpus=record.vcpus,
            memory_gb=record.memory_gb,
            runtime_hours=record.runtime_hours,
            avg_cpu_utilization=record.cpu_utilization,
            avg_memory_utilization=record.memory_utilization,
            total_energy_kwh=result.metrics.energy_kwh,
            total_carbon_kg=result.metrics.carbon_kg,
            confidence=result.metrics.confidence_score,
            detection_method=result.detection.method,
            detection_confidence=result.detection.confidence,
        )

    @staticmethod
    def _assumption_source(resolution: AssumptionResolution) -> str:
        if resolution.degraded:
            return ASSUMPTIONS_DEGRADED
        if resolution.assumptions.overridden:
            return ASSUMPTIONS_TEAM_OVERRIDES
        return ASSUMPTIONS_DEFAULT

    def _record_issues(self, captured: list[RowCoercionIssue], parsed: ParsedWorkloadRow) -> None:
        for issue in parsed.issues:
            logger.debug(
                "Workload row coercion row=%s field=%s message=%s value=%r",
                issue.row_number,
                issue.field_name,
                issue.message,
                issue.value,
            )
            if len(captured) < self._max_row_issues:
                captured.append(issue)

    @staticmethod
    def _read_header(reader: Any) -> list[str]:
        try:
            headers = [header.strip() for header in next(reader)]
        except StopIteration:
            headers = []
        if not any(headers):
            raise WorkloadUploadError("CSV header row is missing.")
        return headers


@contextmanager
def _open_csv(upload_file: UploadFile) -> Iterator[Any]:
    """
    Yield a UTF-8 (BOM tolerant) csv.reader; the caller keeps the file.
    """

    raw_file = upload_file.file
    raw_file.seek(0)
    text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
    try:
        yield csv.reader(text_stream)
    finally:
        try:
            text_stream.detach()
        except ValueError:
            pass


def _iter_data_rows(reader: Any, width: int) -> Iterator[tuple[int, list[str]]]:
    """
    Yield ``(line_number, row)``; blank rows skipped, rows padded or
    truncated to ``width``.
    """

    for row in reader:
        if not row or all(not cell.strip() for cell in row):
            continue
        if len(row) < width:
            row = row + [""] * (width - len(row))
        yield reader.line_num, row[:width]


def build_workload_ingestion_service(db: Session) -> WorkloadIngestionService:
    """
    Build a request-scoped ingestion service bound to ``db``.
    """

    settings = get_workload_ingestion_settings()
    return WorkloadIngestionService(
        store=WorkloadRepository(db),
        assumption_resolver=AssumptionResolver(TeamAssumptionRepository(db)),
        detector=SchemaDetector(sample_size=settings.schema_sample_size),
        persist_row_limit=settings.persist_row_limit,
        aggregate_all_rows=settings.aggregate_all_rows,
        max_row_issues=settings.max_row_issues,
    )
