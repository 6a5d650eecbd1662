"""
db/repositories/report_repository.py

Persistence layer for ReportFile rows.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date
from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from app.domain.report_catalog import ReportCategory
from app.domain.report_rows import ParsedReport
from db.base import utc_now
from db.models.daily_kpi import DailyKPI
from db.models.report_file import ReportFile, ReportStatus
from db.repositories.upsert import dialect_insert

_KEY_COLUMNS = ("report_date", "report_type")


class ReportRepository:
    """
    Repository for ingested report files.

    Upsert semantics: a row is keyed by ``(report_date, report_type)``.
    A successful ingestion always overwrites the key. A failed ingestion
    overwrites it only while the existing row is not ``completed``, so a bad
    re-send never demotes a good report.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert_completed(self, *, parsed: ParsedReport, source: str) -> ReportFile:
        """
        Store a successfully parsed report as the authoritative row for its key.

        Returns
        -------
        ReportFile
            The persisted ORM instance (not yet committed).
        """
        now = utc_now()
        values: dict[str, Any] = {
            "filename": parsed.filename,
            "source": source,
            "date_range_start": parsed.date_range_start,
            "date_range_end": parsed.date_range_end,
            "row_count": parsed.row_count,
            "status": ReportStatus.COMPLETED,
            "error_message": None,
            "parsed_payload": parsed.to_payload(),
            "processed_at": None,
            "created_at": now,
            "updated_at": now,
        }
        stmt = dialect_insert(self._session, ReportFile).values(
            id=uuid.uuid4(),
            report_date=parsed.report_date,
            report_type=parsed.category.value,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_KEY_COLUMNS),
            set_=values,
        ).returning(ReportFile)
        return self._session.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one()

    def record_failure(
        self,
        *,
        filename: str,
        source: str,
        error_message: str,
        category: ReportCategory | None = None,
        report_date: date | None = None,
    ) -> ReportFile | None:
        """
        Record a failed ingestion.

        When both the category and date are known the row is upserted on
        its key; an existing ``completed`` row is left untouched and
        ``None`` is returned. Otherwise a standalone failed row is inserted.
        """
        now = utc_now()
        if category is None or report_date is None:
            row = ReportFile(
                filename=filename,
                source=source,
                report_type=category.value if category is not None else None,
                report_date=report_date,
                status=ReportStatus.FAILED,
                error_message=error_message,
                row_count=0,
            )
            self._session.add(row)
            self._session.flush()
            return row

        values: dict[str, Any] = {
            "filename": filename,
            "source": source,
            "row_count": 0,
            "status": ReportStatus.FAILED,
            "error_message": error_message,
            "parsed_payload": None,
            "created_at": now,
            "updated_at": now,
        }
        stmt = dialect_insert(self._session, ReportFile).values(
            id=uuid.uuid4(),
            report_date=report_date,
            report_type=category.value,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_KEY_COLUMNS),
            set_=values,
            where=ReportFile.status != ReportStatus.COMPLETED,
        ).returning(ReportFile)
        return self._session.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one_or_none()

    def mark_processed(
        self,
        report_date: date,
        report_ids: Sequence[uuid.UUID] | None = None,
    ) -> int:
        """Stamp ``processed_at`` on the date's completed rows (optionally a subset)."""
        stmt = (
            update(ReportFile)
            .where(
                ReportFile.report_date == report_date,
                ReportFile.status == ReportStatus.COMPLETED,
            )
            .values(processed_at=utc_now())
        )
        if report_ids:
            stmt = stmt.where(ReportFile.id.in_(list(report_ids)))
        result = self._session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, report_id: uuid.UUID) -> ReportFile | None:
        return self._session.get(ReportFile, report_id)

    def get_by_key(self, report_date: date, category: ReportCategory) -> ReportFile | None:
        stmt = select(ReportFile).where(
            ReportFile.report_date == report_date,
            ReportFile.report_type == category.value,
        )
        return self._session.scalars(stmt).one_or_none()

    def list_completed_for_date(self, report_date: date) -> list[ReportFile]:
        """Authoritative rows for *report_date*, ordered by category."""
        stmt = (
            select(ReportFile)
            .where(
                ReportFile.report_date == report_date,
                ReportFile.status == ReportStatus.COMPLETED,
            )
            .order_by(ReportFile.report_type)
        )
        return list(self._session.scalars(stmt).all())

    def list_recent(self, *, limit: int = 50, report_date: date | None = None) -> list[ReportFile]:
        """Ingestion log, newest first."""
        stmt: Select[tuple[ReportFile]] = select(ReportFile)
        if report_date is not None:
            stmt = stmt.where(ReportFile.report_date == report_date)
        stmt = stmt.order_by(ReportFile.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def list_uncomputed_dates(self, *, since: date) -> list[date]:
        """
        Dates on or after *since* with at least one completed report and no
        DailyKPI row yet, oldest first.
        """
        computed = select(DailyKPI.report_date)
        stmt = (
            select(ReportFile.report_date)
            .where(
                ReportFile.status == ReportStatus.COMPLETED,
                ReportFile.report_date.is_not(None),
                ReportFile.report_date >= since,
                ReportFile.report_date.not_in(computed),
            )
            .distinct()
            .order_by(ReportFile.report_date)
        )
        return list(self._session.scalars(stmt).all())
