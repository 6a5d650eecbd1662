"""
db/models/report_file.py

One ingested dialer report file.

A row is keyed by ``(report_date, report_type)``: re-ingesting the same
report for the same day upserts the existing row instead of inserting a
duplicate. Rows whose date or category could not be determined keep both
columns NULL and therefore never collide.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, DateTime, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin

_UPSERT_CONSTRAINT = "uq_dialer_reports_date_type"


class ReportSource:
    MANUAL = "manual"
    EMAIL = "email"


class ReportStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ReportFile(Base, TimestampMixin):
    """
    Persisted ingestion record for a single dialer export.

    ``parsed_payload`` keeps the decoded rows so a day can be recomputed
    from storage once every required category has arrived, regardless of
    which request delivered each file.
    """

    __tablename__ = "dialer_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    source: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ReportSource.MANUAL,
        comment="manual or email",
    )
    report_type: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="ReportCategory value; NULL when the category is unknown",
    )
    report_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="End date of the covered range",
    )
    date_range_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_range_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ReportStatus.PROCESSING,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    parsed_payload: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Decoded typed rows used for recomputation",
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set when the row was folded into a daily computation",
    )

    __table_args__ = (
        UniqueConstraint("report_date", "report_type", name=_UPSERT_CONSTRAINT),
        Index("ix_dialer_reports_report_date", "report_date"),
        Index("ix_dialer_reports_status", "status"),
        Index("ix_dialer_reports_created_at", "created_at"),
    )
