"""
db/models/agent_performance.py

Per-agent daily performance joined from agent summary and production rows.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, Float, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class AgentPerformance(Base, TimestampMixin):
    __tablename__ = "dialer_agent_performance"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    skill: Mapped[str | None] = mapped_column(String(255), nullable=True)

    dials: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    connects: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    contacts: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    transfers: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    hours_worked: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    talk_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    wait_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    wrap_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    logged_in_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    tph: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    connects_per_hour: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    connect_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    conversion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dead_air_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dispositions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    tph_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    conversion_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dials_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("report_date", "agent_name", name="uq_dialer_agent_performance_date_agent"),
        Index("ix_dialer_agent_performance_report_date", "report_date"),
    )
