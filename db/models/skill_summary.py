"""
db/models/skill_summary.py

Per-skill (queue) breakdown for one report date.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, Float, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class SkillSummary(Base, TimestampMixin):
    """
    Skill-level aggregation derived from the production report.

    All rows for a date are deleted and rebuilt on every recomputation.
    """

    __tablename__ = "dialer_skill_summaries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    skill: Mapped[str] = mapped_column(String(255), nullable=False)
    agent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_connects: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_contacts: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_transfers: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_man_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    avg_tph: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    conversion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dispositions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("report_date", "skill", name="uq_dialer_skill_summaries_date_skill"),
        Index("ix_dialer_skill_summaries_report_date", "report_date"),
    )
