"""
app/services/checklist_service.py

Completeness gate: which required report categories have arrived for a date.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import get_report_catalog_settings
from app.domain.report_catalog import ReportCategory
from db.repositories.daily_kpi_repository import DailyKPIRepository
from db.repositories.report_repository import ReportRepository


@dataclass(frozen=True)
class CategoryStatus:
    category: ReportCategory
    received: bool
    rows: int | None = None
    received_at: datetime | None = None


@dataclass(frozen=True)
class ChecklistStatus:
    """
    Gate state for one report date.

    ``complete`` is true iff every required category has a ``completed``
    report; ``computed`` is true iff a DailyKPI row exists for the date.
    """

    report_date: date
    received: tuple[ReportCategory, ...]
    missing: tuple[ReportCategory, ...]
    computed: bool
    computed_at: datetime | None
    reports: tuple[CategoryStatus, ...]

    @property
    def received_count(self) -> int:
        return len(self.received)

    @property
    def total_count(self) -> int:
        return len(self.received) + len(self.missing)

    @property
    def complete(self) -> bool:
        return not self.missing


class ChecklistService:
    """Pure read over ReportFile and DailyKPI; never writes."""

    def __init__(self, required: Sequence[ReportCategory]) -> None:
        self._required = tuple(required)

    @property
    def required(self) -> tuple[ReportCategory, ...]:
        return self._required

    def status(self, db: Session, report_date: date) -> ChecklistStatus:
        stored = {
            row.report_type: row
            for row in ReportRepository(db).list_completed_for_date(report_date)
        }
        daily = DailyKPIRepository(db).get_by_date(report_date)

        reports = []
        for category in self._required:
            row = stored.get(category.value)
            if row is None:
                reports.append(CategoryStatus(category=category, received=False))
            else:
                reports.append(
                    CategoryStatus(
                        category=category,
                        received=True,
                        rows=row.row_count,
                        received_at=row.created_at,
                    )
                )

        return ChecklistStatus(
            report_date=report_date,
            received=tuple(r.category for r in reports if r.received),
            missing=tuple(r.category for r in reports if not r.received),
            computed=daily is not None,
            computed_at=daily.updated_at if daily is not None else None,
            reports=tuple(reports),
        )


@lru_cache(maxsize=1)
def get_checklist_service() -> ChecklistService:
    return ChecklistService(get_report_catalog_settings().required_categories)
