"""
app/services/batch_ingestion_service.py

Service layer for multi-file report batches.

Files are ingested one at a time, each committed on its own, so a bad file
never affects its neighbours. Once every file is stored, the KPI pipeline
runs once per distinct report date touched by the batch:

    1. ReportIngestionService.ingest()       per file
    2. KPIOrchestrator.compute_and_store()   per date, if the set is complete
    3. ChecklistService.status()             per date, for the response

KPI database failures propagate; the stored reports stay committed and the
date can be recomputed later by the catch-up job.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import get_dialer_ingestion_settings
from app.services.checklist_service import ChecklistService, ChecklistStatus, get_checklist_service
from app.services.kpi_orchestrator import (
    DayComputation,
    IncompleteSet,
    KPIAggregationError,
    KPIOrchestrator,
    KPIPersistenceError,
    get_kpi_orchestrator,
)
from app.services.report_ingestion_service import (
    IngestFailure,
    IngestResult,
    IngestSuccess,
    ReportIngestionService,
    get_report_ingestion_service,
)
from db.repositories.report_repository import ReportRepository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BatchTooLargeError(ValueError):
    """Raised before any file is read when a batch exceeds the file limit."""


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content: bytes


@dataclass(frozen=True)
class DateOutcome:
    report_date: date
    checklist: ChecklistStatus
    computation: DayComputation | None = None

    @property
    def computed(self) -> bool:
        return self.computation is not None


@dataclass(frozen=True)
class BatchResult:
    results: tuple[IngestResult, ...]
    dates: tuple[DateOutcome, ...]

    @property
    def successes(self) -> tuple[IngestSuccess, ...]:
        return tuple(r for r in self.results if isinstance(r, IngestSuccess))

    @property
    def failures(self) -> tuple[IngestFailure, ...]:
        return tuple(r for r in self.results if isinstance(r, IngestFailure))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BatchIngestionService:
    def __init__(
        self,
        ingestion: ReportIngestionService,
        orchestrator: KPIOrchestrator,
        checklist: ChecklistService,
        *,
        max_files: int | None = None,
    ) -> None:
        self._ingestion = ingestion
        self._orchestrator = orchestrator
        self._checklist = checklist
        self._max_files = max_files

    def process(self, db: Session, files: Sequence[IncomingFile], source: str) -> BatchResult:
        """
        Ingest *files* sequentially, then compute each complete date.

        Raises
        ------
        BatchTooLargeError
            If the batch holds more files than allowed.
        ReportPersistenceError, KPIAggregationError, KPIPersistenceError
            On database failures.
        """
        if self._max_files is not None and len(files) > self._max_files:
            raise BatchTooLargeError(
                f"Batch has {len(files)} files; at most {self._max_files} are accepted."
            )

        logger.info("Batch started files=%d source=%s", len(files), source)
        results = tuple(
            self._ingestion.ingest(db, item.content, item.filename, source) for item in files
        )
        successes = [r for r in results if isinstance(r, IngestSuccess)]

        outcomes = []
        for report_date in sorted({s.report_date for s in successes}):
            same_date = [s for s in successes if s.report_date == report_date]
            outcome = self._orchestrator.compute_and_store(
                db,
                [s.parsed for s in same_date],
                report_date,
                [s.report_id for s in same_date],
            )
            outcomes.append(
                DateOutcome(
                    report_date=report_date,
                    checklist=self._checklist.status(db, report_date),
                    computation=outcome if isinstance(outcome, DayComputation) else None,
                )
            )

        logger.info(
            "Batch finished files=%d stored=%d failed=%d dates=%d computed=%d",
            len(results),
            len(successes),
            len(results) - len(successes),
            len(outcomes),
            sum(1 for o in outcomes if o.computed),
        )
        return BatchResult(results=results, dates=tuple(outcomes))

    def compute_pending(self, db: Session, *, days: int, today: date) -> list[DayComputation]:
        """
        Compute every date in the last *days* that has stored reports but no
        DailyKPI row. Dates whose set is still incomplete are left alone.

        A date whose computation fails is logged and skipped so it cannot
        hold back the dates after it; the next run retries it.
        """
        since = today - timedelta(days=days)
        pending = ReportRepository(db).list_uncomputed_dates(since=since)
        computed: list[DayComputation] = []
        for report_date in pending:
            try:
                outcome = self._orchestrator.compute_and_store(db, (), report_date)
            except (KPIAggregationError, KPIPersistenceError) as exc:
                logger.error(
                    "compute_pending date=%s failed: %s",
                    report_date.isoformat(),
                    exc,
                    exc_info=True,
                )
                continue
            if isinstance(outcome, IncompleteSet):
                logger.debug(
                    "compute_pending date=%s still missing %d categories",
                    report_date.isoformat(),
                    len(outcome.missing),
                )
                continue
            computed.append(outcome)
        return computed


@lru_cache(maxsize=1)
def get_batch_ingestion_service() -> BatchIngestionService:
    return BatchIngestionService(
        get_report_ingestion_service(),
        get_kpi_orchestrator(),
        get_checklist_service(),
        max_files=get_dialer_ingestion_settings().max_files_per_batch,
    )
