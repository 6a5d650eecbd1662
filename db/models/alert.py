"""
db/models/alert.py

Alert rules and the alerts they raise.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin, utc_now

_ALERT_UNIQUE_CONSTRAINT = "uq_dialer_alerts_date_rule_subject"


class AlertSeverity:
    WARNING = "warning"
    CRITICAL = "critical"


class AlertRule(Base, TimestampMixin):
    """
    Configured detection rule.

    ``scope`` selects what the metric is read from: ``daily_aggregate``
    and ``trend`` read the DailyKPI row, ``skill`` each SkillSummary row,
    ``agent`` each AgentPerformance row.
    """

    __tablename__ = "dialer_alert_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    metric: Mapped[str] = mapped_column(String(64), nullable=False)
    operator: Mapped[str] = mapped_column(String(8), nullable=False)
    warning_threshold: Mapped[float] = mapped_column(Float, nullable=False)
    critical_threshold: Mapped[float] = mapped_column(Float, nullable=False)
    scope: Mapped[str] = mapped_column(String(32), nullable=False)
    min_hours_filter: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    min_connects_filter: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Alert(Base):
    """
    One detected anomaly.

    ``subject`` identifies what the alert is about (``daily``,
    ``agent:<name>``, ``skill:<name>``). Together with the date and rule it
    forms the idempotency key, so recomputing a day never duplicates alerts
    and never resets an acknowledgement.
    """

    __tablename__ = "dialer_alerts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    rule_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("dialer_alert_rules.id", ondelete="CASCADE"),
        nullable=False,
    )
    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    subject: Mapped[str] = mapped_column(String(300), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    agent_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    skill: Mapped[str | None] = mapped_column(String(255), nullable=True)
    metric_name: Mapped[str] = mapped_column(String(64), nullable=False)
    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    threshold_value: Mapped[float] = mapped_column(Float, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    acknowledged_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("report_date", "rule_id", "subject", name=_ALERT_UNIQUE_CONSTRAINT),
        Index("ix_dialer_alerts_report_date", "report_date"),
        Index("ix_dialer_alerts_created_at", "created_at"),
        Index("ix_dialer_alerts_acknowledged", "acknowledged"),
    )
