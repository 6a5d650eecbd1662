"""
db/repositories/daily_kpi_repository.py

Persistence layer for DailyKPI rows.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.daily_kpi import DailyKPI
from db.repositories.upsert import dialect_insert


class DailyKPIRepository:
    """
    Repository for the one-row-per-date KPI snapshot.

    Upsert semantics: writing a date that already exists replaces every
    metric column, so recomputation never accumulates.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert(self, *, report_date: date, metrics: dict[str, Any]) -> DailyKPI:
        """
        Insert or fully overwrite the row for *report_date*.

        ``metrics`` must only contain DailyKPI column names.
        """
        now = utc_now()
        values = {**metrics, "updated_at": now}
        stmt = (
            dialect_insert(self._session, DailyKPI)
            .values(id=uuid.uuid4(), report_date=report_date, created_at=now, **values)
            .on_conflict_do_update(index_elements=["report_date"], set_=values)
            .returning(DailyKPI)
        )
        return self._session.scalars(
            stmt, execution_options={"populate_existing": True}
        ).one()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_date(self, report_date: date) -> DailyKPI | None:
        stmt = select(DailyKPI).where(DailyKPI.report_date == report_date)
        return self._session.scalars(stmt).one_or_none()

    def get_previous(self, report_date: date) -> DailyKPI | None:
        """Nearest computed row strictly before *report_date*, skipping gaps."""
        stmt = (
            select(DailyKPI)
            .where(DailyKPI.report_date < report_date)
            .order_by(DailyKPI.report_date.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).one_or_none()

    def list_history(self, report_date: date, *, limit: int) -> list[DailyKPI]:
        """Up to *limit* computed rows before *report_date*, newest first."""
        stmt = (
            select(DailyKPI)
            .where(DailyKPI.report_date < report_date)
            .order_by(DailyKPI.report_date.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def list_range(self, start: date, end: date, *, newest_first: bool = True) -> list[DailyKPI]:
        order = DailyKPI.report_date.desc() if newest_first else DailyKPI.report_date.asc()
        stmt = (
            select(DailyKPI)
            .where(DailyKPI.report_date >= start, DailyKPI.report_date <= end)
            .order_by(order)
        )
        return list(self._session.scalars(stmt).all())

    def latest_report_date(self) -> date | None:
        stmt = select(DailyKPI.report_date).order_by(DailyKPI.report_date.desc()).limit(1)
        return self._session.scalars(stmt).first()
