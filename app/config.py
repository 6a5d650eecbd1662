"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.domain.report_catalog import ReportCategory, parse_category_names
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


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class DialerIngestionSettings:
    """
    Runtime settings for report ingestion endpoints.

    ``api_key`` guards the email-forwarding webhook. When unset, every
    webhook call is rejected.
    """

    api_key: str | None = None
    max_files_per_batch: int = 50
    max_file_bytes: int = 20 * 1024 * 1024


@dataclass(frozen=True)
class ReportCatalogSettings:
    """
    Categories that must be received before a date is computed.
    """

    required_categories: tuple[ReportCategory, ...] = tuple(ReportCategory)


@dataclass(frozen=True)
class AlertSettings:
    """
    Alert engine settings.
    """

    trend_window_days: int = 7


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Background catch-up job settings.
    """

    enabled: bool = False
    catch_up_days: int = 7
    interval_minutes: int = 30


@lru_cache(maxsize=1)
def get_dialer_ingestion_settings() -> DialerIngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return DialerIngestionSettings(
        api_key=_get_optional_str_env("DIALER_INGEST_API_KEY"),
        max_files_per_batch=max(1, _get_int_env("DIALER_MAX_FILES_PER_BATCH", 50)),
        max_file_bytes=max(1, _get_int_env("DIALER_MAX_FILE_BYTES", 20 * 1024 * 1024)),
    )


@lru_cache(maxsize=1)
def get_report_catalog_settings() -> ReportCatalogSettings:
    """
    Return the required report categories.

    ``DIALER_REQUIRED_REPORTS`` is a comma-separated list of category names;
    unset or empty means every category is required.

    Raises ValueError if the list names an unknown category.
    """

    raw = _get_optional_str_env("DIALER_REQUIRED_REPORTS")
    if raw is None:
        return ReportCatalogSettings()
    categories = parse_category_names(raw)
    if not categories:
        return ReportCatalogSettings()
    return ReportCatalogSettings(required_categories=categories)


@lru_cache(maxsize=1)
def get_alert_settings() -> AlertSettings:
    return AlertSettings(
        trend_window_days=max(1, _get_int_env("DIALER_ALERT_TREND_WINDOW_DAYS", 7)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", False),
        catch_up_days=max(1, _get_int_env("SCHEDULER_CATCH_UP_DAYS", 7)),
        interval_minutes=max(1, _get_int_env("SCHEDULER_INTERVAL_MINUTES", 30)),
    )
