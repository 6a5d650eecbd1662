from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from app.domain.report_catalog import ReportCategory
from app.services.checklist_service import ChecklistService
from app.services.report_ingestion_service import ReportIngestionService
from db.models.report_file import ReportSource
from tests.conftest import REPORT_DATE, filename_for, make_xlsx, report_files


def _ingest(db: Session, files: list[tuple[str, bytes]]) -> None:
    service = ReportIngestionService()
    for filename, content in files:
        service.ingest(db, content, filename, ReportSource.MANUAL)


def test_eleven_of_twelve_is_incomplete(db: Session) -> None:
    checklist = ChecklistService(tuple(ReportCategory))
    categories = [c for c in ReportCategory if c is not ReportCategory.SHIFT_REPORT]
    _ingest(db, report_files(categories=categories))

    status = checklist.status(db, REPORT_DATE)

    assert status.received_count == 11
    assert status.total_count == 12
    assert status.missing == (ReportCategory.SHIFT_REPORT,)
    assert not status.complete
    assert not status.computed
    assert status.computed_at is None


def test_twelve_of_twelve_is_complete(db: Session) -> None:
    checklist = ChecklistService(tuple(ReportCategory))
    _ingest(db, report_files())

    status = checklist.status(db, REPORT_DATE)

    assert status.received_count == 12
    assert status.complete
    received = {entry.category: entry for entry in status.reports}
    assert received[ReportCategory.AGENT_SUMMARY].rows == 3
    assert received[ReportCategory.AGENT_SUMMARY].received_at is not None


def test_failed_report_does_not_count(db: Session) -> None:
    checklist = ChecklistService((ReportCategory.AGENT_SUMMARY,))
    _ingest(db, [(filename_for(ReportCategory.AGENT_SUMMARY), make_xlsx(["Team"], [["A"]]))])

    status = checklist.status(db, REPORT_DATE)

    assert status.missing == (ReportCategory.AGENT_SUMMARY,)
    assert status.reports[0].received is False


def test_other_dates_are_independent(db: Session) -> None:
    checklist = ChecklistService((ReportCategory.AGENT_SUMMARY,))
    _ingest(db, report_files(categories=[ReportCategory.AGENT_SUMMARY]))

    assert checklist.status(db, REPORT_DATE).complete
    assert not checklist.status(db, date(2026, 1, 14)).complete


def test_required_subset_ignores_other_categories(db: Session) -> None:
    checklist = ChecklistService((ReportCategory.AGENT_SUMMARY, ReportCategory.PRODUCTION_REPORT))
    _ingest(db, report_files(categories=[ReportCategory.AGENT_SUMMARY, ReportCategory.SHIFT_REPORT]))

    status = checklist.status(db, REPORT_DATE)

    assert status.received == (ReportCategory.AGENT_SUMMARY,)
    assert status.missing == (ReportCategory.PRODUCTION_REPORT,)
    assert status.total_count == 2
