"""
app/services/kpi_orchestrator.py

Daily KPI pipeline orchestrator.

Wires ChecklistService → AggregationService → DialerKPIFormula →
AlertEngine → repositories into a single transactional run per report
date. No business logic lives here; every layer retains its own
responsibility:

    ChecklistService    – completeness gate
    AggregationService  – stored payloads, prior days
    DialerKPIFormula    – deterministic formula calculation
    AlertEngine         – rule evaluation
    Repositories        – upserts and replacements

Failure contract
----------------
- Incomplete report set   → returns :class:`IncompleteSet`, nothing written
- Aggregation failure     → raises KPIAggregationError  (rollback implied)
- Persistence failure     → raises KPIPersistenceError after rollback

Concurrency
-----------
Runs for the same date are serialised with a transaction-scoped PostgreSQL
advisory lock keyed on the date. The lock is released by the commit or
rollback that ends the run. Other dialects run unlocked.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from alerts.base import Anomaly
from alerts.engine import AlertEngine
from app.config import get_alert_settings
from app.domain.report_catalog import ReportCategory
from app.domain.report_rows import ParsedReport
from app.services.aggregation_service import AggregationService, build_formula_inputs
from app.services.alert_service import rule_definitions
from app.services.checklist_service import ChecklistService, get_checklist_service
from db.repositories.alert_repository import AlertRepository
from db.repositories.breakdown_repository import AgentPerformanceRepository, SkillSummaryRepository
from db.repositories.daily_kpi_repository import DailyKPIRepository
from db.repositories.report_repository import ReportRepository
from kpi.dialer import DialerKPIFormula, compute_deltas

logger = logging.getLogger(__name__)

# First key of the two-key advisory lock; the second is the date ordinal.
_ADVISORY_LOCK_NAMESPACE = 0x4449414C


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class KPIAggregationError(RuntimeError):
    """
    Raised when inputs for a date cannot be fetched from the database.

    The session has been rolled back; no partial writes occurred.
    """


class KPIPersistenceError(RuntimeError):
    """
    Raised when the computed rows cannot be written.

    The session has been rolled back before this exception is raised.
    """


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncompleteSet:
    """
    Returned instead of a computation when required categories are missing.

    Not an error: the reports were stored and the date will be computed
    once the remaining categories arrive.
    """

    report_date: date
    missing: tuple[ReportCategory, ...]


@dataclass(frozen=True)
class DayComputation:
    """
    Structured output of a single orchestrator run.

    Attributes
    ----------
    daily_kpi_id:
        Primary key of the upserted ``DailyKPI`` row.
    metrics:
        DailyKPI column values that were persisted (``raw_data`` excluded).
    alerts_detected:
        Anomalies raised by the engine for this run.
    alerts_created:
        How many of them were new; repeats of an existing alert are skipped.
    """

    report_date: date
    daily_kpi_id: uuid.UUID
    metrics: dict[str, Any]
    skill_count: int
    agent_count: int
    alerts_detected: int
    alerts_created: int
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class KPIOrchestrator:
    """
    Coordinates the full KPI computation for a single report date.

    Stateless with respect to business data; the session is supplied per
    call and the orchestrator owns its commit.
    """

    def __init__(
        self,
        checklist: ChecklistService | None = None,
        *,
        formula: DialerKPIFormula | None = None,
        engine: AlertEngine | None = None,
        trend_window_days: int | None = None,
    ) -> None:
        self._checklist = checklist or get_checklist_service()
        self._formula = formula or DialerKPIFormula()
        self._engine = engine or AlertEngine()
        self._trend_window = trend_window_days or get_alert_settings().trend_window_days

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def compute_and_store(
        self,
        db: Session,
        parsed_reports: Iterable[ParsedReport],
        report_date: date,
        report_ids: Sequence[uuid.UUID] | None = None,
    ) -> DayComputation | IncompleteSet:
        """
        Compute and persist every daily output for *report_date*.

        Steps
        -----
        1. Take the per-date lock.
        2. Re-check the completeness gate; stop with :class:`IncompleteSet`.
        3. Load the stored reports for the date. *parsed_reports* only names
           the files that triggered the run; the stored rows are the input.
        4. Run the formula and attach deltas against the nearest prior day.
        5. Run the alert engine.
        6. Upsert DailyKPI, replace skill and agent rows, insert alerts,
           mark reports processed, commit once.

        Raises
        ------
        KPIAggregationError
            If reading inputs fails.
        KPIPersistenceError
            If writing results fails.
        """
        run_start = time.monotonic()
        triggered_by = [p.filename for p in parsed_reports]
        logger.info(
            "KPIOrchestrator.compute_and_store started date=%s triggered_by=%s",
            report_date.isoformat(),
            triggered_by,
        )

        try:
            self._lock(db, report_date)
            gate = self._checklist.status(db, report_date)
            if not gate.complete:
                db.rollback()
                logger.info(
                    "KPIOrchestrator date=%s incomplete: missing=%s",
                    report_date.isoformat(),
                    [c.value for c in gate.missing],
                )
                return IncompleteSet(report_date=report_date, missing=gate.missing)

            aggregation = AggregationService(db)
            reports = aggregation.load_reports(report_date)
            previous = aggregation.get_previous_daily(report_date)
            history = aggregation.get_history(report_date, window=self._trend_window)
            rules = rule_definitions(AlertRepository(db).list_active_rules())
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "KPIOrchestrator aggregation failed date=%s: %s",
                report_date.isoformat(),
                exc,
                exc_info=True,
            )
            raise KPIAggregationError(
                f"Failed to load KPI inputs for {report_date.isoformat()}: {exc}"
            ) from exc

        result = self._formula.calculate(build_formula_inputs(reports))
        daily: dict[str, Any] = result["daily"]
        daily.update(compute_deltas(daily["total_transfers"], daily["transfers_per_hour"], previous))

        anomalies = self._engine.detect(
            daily,
            result["skills"],
            history,
            agents=result["agents"],
            rules=rules,
        )

        daily_id, alerts_created = self._persist(
            db,
            report_date=report_date,
            daily=daily,
            skills=result["skills"],
            agents=result["agents"],
            anomalies=anomalies,
            report_ids=report_ids,
        )

        elapsed = time.monotonic() - run_start
        logger.info(
            "KPIOrchestrator.compute_and_store completed date=%s transfers=%s tph=%s "
            "agents=%d skills=%d alerts=%d/%d elapsed=%.3fs",
            report_date.isoformat(),
            daily["total_transfers"],
            daily["transfers_per_hour"],
            len(result["agents"]),
            len(result["skills"]),
            alerts_created,
            len(anomalies),
            elapsed,
        )
        return DayComputation(
            report_date=report_date,
            daily_kpi_id=daily_id,
            metrics={k: v for k, v in daily.items() if k != "raw_data"},
            skill_count=len(result["skills"]),
            agent_count=len(result["agents"]),
            alerts_detected=len(anomalies),
            alerts_created=alerts_created,
            elapsed_seconds=elapsed,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _lock(db: Session, report_date: date) -> None:
        if db.get_bind().dialect.name != "postgresql":
            return
        db.execute(
            text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
            {"namespace": _ADVISORY_LOCK_NAMESPACE, "key": report_date.toordinal()},
        )

    def _persist(
        self,
        db: Session,
        *,
        report_date: date,
        daily: dict[str, Any],
        skills: list[dict[str, Any]],
        agents: list[dict[str, Any]],
        anomalies: list[Anomaly],
        report_ids: Sequence[uuid.UUID] | None,
    ) -> tuple[uuid.UUID, int]:
        try:
            row = DailyKPIRepository(db).upsert(report_date=report_date, metrics=daily)
            SkillSummaryRepository(db).replace_for_date(report_date, skills)
            AgentPerformanceRepository(db).replace_for_date(report_date, agents)
            created = AlertRepository(db).insert_alerts(
                [_alert_row(report_date, anomaly) for anomaly in anomalies if anomaly.rule_id is not None]
            )
            ReportRepository(db).mark_processed(report_date, report_ids)
            db.commit()
            return row.id, created
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "KPIOrchestrator persistence failed date=%s: %s",
                report_date.isoformat(),
                exc,
                exc_info=True,
            )
            raise KPIPersistenceError(
                f"Failed to persist KPI results for {report_date.isoformat()}: {exc}"
            ) from exc


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _alert_row(report_date: date, anomaly: Anomaly) -> dict[str, Any]:
    return {
        "rule_id": anomaly.rule_id,
        "report_date": report_date,
        "subject": anomaly.subject,
        "severity": anomaly.severity,
        "agent_name": anomaly.agent_name,
        "skill": anomaly.skill,
        "metric_name": anomaly.metric_name,
        "metric_value": anomaly.metric_value,
        "threshold_value": anomaly.threshold_value,
        "message": anomaly.message,
        "details": anomaly.details,
    }


@lru_cache(maxsize=1)
def get_kpi_orchestrator() -> KPIOrchestrator:
    return KPIOrchestrator()


__all__ = [
    "DayComputation",
    "IncompleteSet",
    "KPIAggregationError",
    "KPIOrchestrator",
    "KPIPersistenceError",
    "get_kpi_orchestrator",
]
