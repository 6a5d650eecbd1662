"""
db/repositories/breakdown_repository.py

Persistence for the per-date breakdown tables (skills and agents).

Both tables are rebuilt wholesale for a date on every recomputation:
existing rows are deleted and the new set inserted in the caller's
transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.agent_performance import AgentPerformance
from db.models.skill_summary import SkillSummary

_AGENT_SORT_COLUMNS = {
    "tph": AgentPerformance.tph,
    "conversion": AgentPerformance.conversion_rate,
    "dials": AgentPerformance.dials,
    "hours": AgentPerformance.hours_worked,
}


class SkillSummaryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def replace_for_date(self, report_date: date, rows: Sequence[dict[str, Any]]) -> int:
        self._session.execute(delete(SkillSummary).where(SkillSummary.report_date == report_date))
        self._session.add_all(SkillSummary(report_date=report_date, **row) for row in rows)
        self._session.flush()
        return len(rows)

    def list_for_date(self, report_date: date) -> list[SkillSummary]:
        """Skill rows for the date, highest transfers first."""
        stmt = (
            select(SkillSummary)
            .where(SkillSummary.report_date == report_date)
            .order_by(SkillSummary.total_transfers.desc(), SkillSummary.skill)
        )
        return list(self._session.scalars(stmt).all())


class AgentPerformanceRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def replace_for_date(self, report_date: date, rows: Sequence[dict[str, Any]]) -> int:
        self._session.execute(
            delete(AgentPerformance).where(AgentPerformance.report_date == report_date)
        )
        self._session.add_all(AgentPerformance(report_date=report_date, **row) for row in rows)
        self._session.flush()
        return len(rows)

    def list_for_date(
        self,
        report_date: date,
        *,
        skill: str | None = None,
        sort: str = "tph",
        ranking: str = "top",
        limit: int = 100,
    ) -> list[AgentPerformance]:
        """
        Agent rows for the date.

        ``sort`` is one of ``tph``, ``conversion``, ``dials``, ``hours``;
        ``ranking="bottom"`` reverses the order.

        Raises
        ------
        ValueError
            For an unknown sort key or ranking.
        """
        column = _AGENT_SORT_COLUMNS.get(sort)
        if column is None:
            raise ValueError(f"Unknown sort {sort!r}. Valid values: {sorted(_AGENT_SORT_COLUMNS)}.")
        if ranking not in {"top", "bottom"}:
            raise ValueError(f"Unknown ranking {ranking!r}. Valid values: ['bottom', 'top'].")

        stmt = select(AgentPerformance).where(AgentPerformance.report_date == report_date)
        if skill:
            stmt = stmt.where(AgentPerformance.skill == skill)
        order = column.desc() if ranking == "top" else column.asc()
        stmt = stmt.order_by(order, AgentPerformance.agent_name).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
