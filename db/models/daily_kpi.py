"""
db/models/daily_kpi.py

Daily dialer performance snapshot. One row per report date.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, Float, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin

_UPSERT_CONSTRAINT = "uq_dialer_daily_kpis_report_date"


class DailyKPI(Base, TimestampMixin):
    """
    Aggregated metrics for one report date.

    Rows exist only for dates whose report set was complete when the
    aggregator ran. Recomputation overwrites every column; ``updated_at``
    is the "computed at" timestamp exposed to callers.
    """

    __tablename__ = "dialer_daily_kpis"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)

    total_agents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agents_with_transfers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_dials: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_connects: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_contacts: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_transfers: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_man_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_talk_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_wait_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_wrap_time_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    connect_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    contact_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    conversion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    transfers_per_hour: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dials_per_hour: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dead_air_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    hung_up_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    waste_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    transfer_success_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    total_campaigns: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_system_dials: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_system_connects: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    prev_day_transfers: Mapped[float | None] = mapped_column(Float, nullable=True)
    prev_day_tph: Mapped[float | None] = mapped_column(Float, nullable=True)
    delta_transfers: Mapped[float | None] = mapped_column(Float, nullable=True)
    delta_tph: Mapped[float | None] = mapped_column(Float, nullable=True)

    dispositions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    distribution: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    raw_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("report_date", name=_UPSERT_CONSTRAINT),
    )
