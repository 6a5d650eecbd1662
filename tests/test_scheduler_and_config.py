from __future__ import annotations

from contextlib import contextmanager
from types import SimpleNamespace

import pytest

from app import config
from app.config import SchedulerSettings
from app.domain.report_catalog import ReportCategory
from app.scheduler import jobs


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    for getter in (
        config.get_report_catalog_settings,
        config.get_scheduler_settings,
        config.get_dialer_ingestion_settings,
    ):
        getter.cache_clear()
    yield
    for getter in (
        config.get_report_catalog_settings,
        config.get_scheduler_settings,
        config.get_dialer_ingestion_settings,
    ):
        getter.cache_clear()


def test_required_reports_default_to_every_category(monkeypatch) -> None:
    monkeypatch.delenv("DIALER_REQUIRED_REPORTS", raising=False)

    assert config.get_report_catalog_settings().required_categories == tuple(ReportCategory)


def test_required_reports_from_env(monkeypatch) -> None:
    monkeypatch.setenv("DIALER_REQUIRED_REPORTS", "ProductionReport, AgentSummary")

    assert config.get_report_catalog_settings().required_categories == (
        ReportCategory.PRODUCTION_REPORT,
        ReportCategory.AGENT_SUMMARY,
    )


def test_required_reports_reject_unknown_names(monkeypatch) -> None:
    monkeypatch.setenv("DIALER_REQUIRED_REPORTS", "AgentSummary,Nope")

    with pytest.raises(ValueError):
        config.get_report_catalog_settings()


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SCHEDULER_INTERVAL_MINUTES", "soon")
    monkeypatch.setenv("SCHEDULER_ENABLED", "yes")
    monkeypatch.setenv("DIALER_MAX_FILES_PER_BATCH", "0")

    scheduler = config.get_scheduler_settings()
    assert scheduler.enabled is True
    assert scheduler.interval_minutes == 30
    assert config.get_dialer_ingestion_settings().max_files_per_batch == 1


def test_build_scheduler_registers_catch_up_job() -> None:
    scheduler = jobs.build_scheduler(SchedulerSettings(enabled=True, interval_minutes=5))

    (job,) = scheduler.get_jobs()
    assert job.id == "dialer_catch_up"
    assert job.func is jobs.run_catch_up


@contextmanager
def _fake_session_scope():
    yield SimpleNamespace()


def test_catch_up_logs_and_swallows_failures(monkeypatch, caplog) -> None:
    class _Failing:
        def compute_pending(self, db, *, days, today):
            raise RuntimeError("database down")

    monkeypatch.setattr(jobs, "session_scope", _fake_session_scope)
    monkeypatch.setattr(jobs, "get_batch_ingestion_service", lambda: _Failing())

    jobs.run_catch_up()

    assert "catch_up failed" in caplog.text


def test_catch_up_uses_configured_window(monkeypatch) -> None:
    calls = []

    class _Recording:
        def compute_pending(self, db, *, days, today):
            calls.append(days)
            return []

    monkeypatch.setenv("SCHEDULER_CATCH_UP_DAYS", "3")
    monkeypatch.setattr(jobs, "session_scope", _fake_session_scope)
    monkeypatch.setattr(jobs, "get_batch_ingestion_service", lambda: _Recording())

    jobs.run_catch_up()

    assert calls == [3]
