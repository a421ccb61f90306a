"""
tests/test_logging_utils.py

Pytest tests for the structured log_event helper.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import logging_utils
from app.logging_utils import log_event


class TestLogEvent:
    def test_emits_sorted_json(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tests.logging_utils.emit")

        with caplog.at_level(logging.INFO, logger=logger.name):
            log_event(logger, logging.INFO, "workload_ingested", team_id="team-1", rows=2, total=Decimal("1.5"))

        (record,) = caplog.records
        payload = json.loads(record.getMessage())
        assert payload == {"event": "workload_ingested", "team_id": "team-1", "rows": 2, "total": "1.5"}
        assert list(payload) == sorted(payload)

    def test_disabled_level_skips_serialization(
        self, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        logger = logging.getLogger("tests.logging_utils.skip")

        def fail(*args: object, **kwargs: object) -> str:
            raise AssertionError("payload serialized for a disabled level")

        monkeypatch.setattr(logging_utils, "json", SimpleNamespace(dumps=fail))
        with caplog.at_level(logging.WARNING, logger=logger.name):
            log_event(logger, logging.DEBUG, "workload_row_parsed", row_number=2)

        assert caplog.records == []
