"""
app/schemas/dialer.py

Request and response schemas for the dialer report endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class AttachmentPayload(CamelModel):
    filename: str = Field(..., min_length=1)
    data: str = Field(..., description="Base64-encoded file content")


class EmailIngestRequest(CamelModel):
    """
    Webhook body from the mail forwarder.

    Either ``attachments`` or the legacy single ``filename``/``data`` pair
    must be present.
    """

    attachments: list[AttachmentPayload] = Field(default_factory=list)
    filename: str | None = None
    data: str | None = None
    sender: str | None = None
    received_at: str | None = None
    subject: str | None = None

    def all_attachments(self) -> list[AttachmentPayload]:
        items = list(self.attachments)
        if self.filename and self.data:
            items.append(AttachmentPayload(filename=self.filename, data=self.data))
        return items


class FileResultResponse(CamelModel):
    filename: str
    status: str
    category: str | None = None
    report_date: dt.date | None = None
    row_count: int | None = None
    error_code: str | None = None
    error: str | None = None


class ChecklistEntryResponse(CamelModel):
    category: str
    received: bool
    rows: int | None = None
    received_at: dt.datetime | None = None


class ChecklistResponse(CamelModel):
    date: dt.date
    received: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    complete: bool
    computed: bool
    computed_at: dt.datetime | None = None
    missing: list[str] = Field(default_factory=list)
    reports: list[ChecklistEntryResponse] = Field(default_factory=list)

    @classmethod
    def from_status(cls, status: Any) -> ChecklistResponse:
        """Build from a :class:`ChecklistStatus`."""
        return cls(
            date=status.report_date,
            received=status.received_count,
            total=status.total_count,
            complete=status.complete,
            computed=status.computed,
            computed_at=status.computed_at,
            missing=[category.value for category in status.missing],
            reports=[
                ChecklistEntryResponse(
                    category=entry.category.value,
                    received=entry.received,
                    rows=entry.rows,
                    received_at=entry.received_at,
                )
                for entry in status.reports
            ],
        )


class KPISummaryResponse(CamelModel):
    total_transfers: float
    transfers_per_hour: float
    connect_rate: float
    conversion_rate: float
    delta_transfers: float | None = None
    delta_tph: float | None = None
    alerts_created: int = 0


class DateResultResponse(CamelModel):
    date: dt.date
    computed: bool
    checklist: ChecklistResponse
    kpis: KPISummaryResponse | None = None


class IngestResponse(CamelModel):
    source: str
    parsed: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    files: list[FileResultResponse] = Field(default_factory=list)
    report_dates: list[dt.date] = Field(default_factory=list)
    dates: list[DateResultResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Query responses
# ---------------------------------------------------------------------------


class DailyKPIResponse(CamelModel):
    report_date: dt.date
    total_agents: int
    agents_with_transfers: int
    total_dials: float
    total_connects: float
    total_contacts: float
    total_transfers: float
    total_man_hours: float
    total_talk_time_min: float
    total_wait_time_min: float
    total_wrap_time_min: float
    connect_rate: float
    contact_rate: float
    conversion_rate: float
    transfers_per_hour: float
    dials_per_hour: float
    dead_air_ratio: float
    hung_up_ratio: float
    waste_rate: float
    transfer_success_rate: float
    total_campaigns: int
    total_system_dials: float
    total_system_connects: float
    prev_day_transfers: float | None = None
    prev_day_tph: float | None = None
    delta_transfers: float | None = None
    delta_tph: float | None = None
    dispositions: dict[str, Any] = Field(default_factory=dict)
    distribution: dict[str, Any] | None = None
    raw_data: dict[str, Any] = Field(default_factory=dict)
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class SkillSummaryResponse(CamelModel):
    skill: str
    agent_count: int
    total_connects: float
    total_contacts: float
    total_transfers: float
    total_man_hours: float
    avg_tph: float
    conversion_rate: float
    dispositions: dict[str, Any] = Field(default_factory=dict)


class SkillListResponse(CamelModel):
    date: dt.date | None = None
    skills: list[SkillSummaryResponse] = Field(default_factory=list)


class AgentPerformanceResponse(CamelModel):
    agent_name: str
    skill: str | None = None
    dials: float
    connects: float
    contacts: float
    transfers: float
    hours_worked: float
    talk_time_min: float
    wait_time_min: float
    wrap_time_min: float
    logged_in_time_min: float
    tph: float
    connects_per_hour: float
    connect_rate: float
    conversion_rate: float
    dead_air_ratio: float
    dispositions: dict[str, Any] = Field(default_factory=dict)
    tph_rank: int | None = None
    conversion_rank: int | None = None
    dials_rank: int | None = None


class AgentListResponse(CamelModel):
    date: dt.date | None = None
    agents: list[AgentPerformanceResponse] = Field(default_factory=list)


class ReportFileResponse(CamelModel):
    id: uuid.UUID
    filename: str
    source: str
    report_type: str | None = None
    report_date: dt.date | None = None
    date_range_start: dt.date | None = None
    date_range_end: dt.date | None = None
    row_count: int
    status: str
    error_message: str | None = None
    processed_at: dt.datetime | None = None
    created_at: dt.datetime | None = None


class AlertResponse(CamelModel):
    id: uuid.UUID
    rule_id: int
    rule_name: str | None = None
    report_date: dt.date
    severity: str
    subject: str
    agent_name: str | None = None
    skill: str | None = None
    metric_name: str
    metric_value: float
    threshold_value: float
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    acknowledged: bool
    acknowledged_by: str | None = None
    acknowledged_at: dt.datetime | None = None
    notes: str | None = None
    created_at: dt.datetime | None = None


class AlertListResponse(CamelModel):
    alerts: list[AlertResponse] = Field(default_factory=list)


class AcknowledgeRequest(CamelModel):
    alert_id: str = Field(..., min_length=1)
    acknowledged_by: str = Field(..., min_length=1, max_length=255)
    notes: str | None = None
