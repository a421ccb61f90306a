"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class WorkloadIngestionSettings:
    """
    Runtime settings for workload CSV ingestion.

    persist_row_limit caps stored workload rows per upload;
    aggregate_all_rows decides whether totals include rows past the cap.
    """

    persist_row_limit: int = 100
    aggregate_all_rows: bool = True
    schema_sample_size: int = 5
    max_row_issues: int = 500


@dataclass(frozen=True)
class LoggingSettings:
    """
    Process-wide logging settings.
    """

    level: str = "INFO"


@lru_cache(maxsize=1)
def get_workload_ingestion_settings() -> WorkloadIngestionSettings:
    """
    Return cached workload ingestion settings from environment variables.
    """

    return WorkloadIngestionSettings(
        persist_row_limit=max(0, _get_int_env("WORKLOAD_PERSIST_ROW_LIMIT", 100)),
        aggregate_all_rows=_get_bool_env("WORKLOAD_AGGREGATE_ALL_ROWS", True),
        schema_sample_size=max(0, _get_int_env("WORKLOAD_SCHEMA_SAMPLE_SIZE", 5)),
        max_row_issues=max(0, _get_int_env("WORKLOAD_MAX_ROW_ISSUES", 500)),
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """
    Return cached logging settings from environment variables.
    """

    return LoggingSettings(level=_get_str_env("LOG_LEVEL", "INFO").upper())
