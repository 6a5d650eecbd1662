"""
app/domain/report_rows.py

Typed row records decoded from each report category, and the
:class:`ParsedReport` container returned by the parser.

Durations are stored in minutes, percentages as plain numbers
(``45.2`` for ``"45.2%"``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, Union

from app.domain.report_catalog import ReportCategory


@dataclass(frozen=True)
class AgentSummaryRow:
    rep: str
    team: str | None = None
    dialed: float = 0.0
    connects: float = 0.0
    contacts: float = 0.0
    hours_worked: float = 0.0
    transfers: float = 0.0
    connects_per_hour: float = 0.0
    sla_hr: float = 0.0
    conversion_rate_pct: float = 0.0
    talk_time_min: float = 0.0
    avg_talk_time_min: float = 0.0
    wait_time_min: float = 0.0
    avg_wait_time_min: float = 0.0
    wrap_time_min: float = 0.0
    avg_wrap_time_min: float = 0.0
    logged_in_time_min: float = 0.0


@dataclass(frozen=True)
class AgentSummarySubcampaignRow:
    rep: str
    campaign: str = ""
    subcampaign: str = ""
    dialed: float = 0.0
    connects: float = 0.0
    contacts: float = 0.0
    hours_worked: float = 0.0
    transfers: float = 0.0
    connects_per_hour: float = 0.0
    sla_hr: float = 0.0
    conversion_rate_pct: float = 0.0
    talk_time_min: float = 0.0
    avg_talk_time_min: float = 0.0
    wait_time_min: float = 0.0
    avg_wait_time_min: float = 0.0
    wrap_time_min: float = 0.0
    avg_wrap_time_min: float = 0.0
    logged_in_time_min: float = 0.0


@dataclass(frozen=True)
class AgentAnalysisRow:
    rep: str
    date: str = ""
    campaign: str = ""
    hours_worked: float = 0.0
    contacts: float = 0.0
    connects: float = 0.0
    connects_per_hour: float = 0.0
    conversion_rate_pct: float = 0.0
    conversion_factor: float = 0.0
    transfers: float = 0.0
    sla_hr: float = 0.0
    call_backs: float = 0.0
    avg_talk_time_min: float = 0.0
    avg_wait_time_min: float = 0.0
    time_avail_min: float = 0.0
    time_paused_min: float = 0.0
    talk_time_min: float = 0.0
    wrap_time_min: float = 0.0
    logged_in_time_min: float = 0.0


@dataclass(frozen=True)
class AgentPauseTimeRow:
    rep: str
    campaign: str = ""
    session_login_time: str = ""
    session_logout_time: str = ""
    pause_time: str = ""
    break_code: str = ""
    unpause_time: str = ""
    time_paused: str = ""
    session_man_hours: float = 0.0


@dataclass(frozen=True)
class CallsPerHourRow:
    hour: str
    total_calls: float = 0.0
    connects: float = 0.0
    contacts: float = 0.0
    transfers: float = 0.0
    conversion_rate_pct: float = 0.0
    inbound: float = 0.0
    inbound_pct: float = 0.0
    abandoned_calls: float = 0.0
    abandon_rate_pct: float = 0.0
    outbound: float = 0.0
    outbound_pct: float = 0.0
    dropped: float = 0.0
    drop_rate_pct: float = 0.0
    talk_time_min: float = 0.0
    avg_hold_time_min: float = 0.0
    avg_wait_time_min: float = 0.0
    contact_pct: float = 0.0


@dataclass(frozen=True)
class CampaignCallLogRow:
    call_status: str
    description: str = ""
    calls: float = 0.0
    percent: float = 0.0


@dataclass(frozen=True)
class CampaignSummaryRow:
    period: str
    campaign: str = ""
    campaign_type: str = ""
    lines_per_agent: float = 0.0
    total_leads: float = 0.0
    available: float = 0.0
    dialed: float = 0.0
    dials_per_hr: float = 0.0
    avg_attempts: float = 0.0
    reps: float = 0.0
    man_hours: float = 0.0
    logged_in_time_min: float = 0.0
    connects: float = 0.0
    connect_pct: float = 0.0
    contacts: float = 0.0
    contact_pct: float = 0.0
    hangups: float = 0.0
    connects_per_hour: float = 0.0
    conversion_rate_pct: float = 0.0
    conversion_factor: float = 0.0
    transfers: float = 0.0
    sla_hr: float = 0.0
    noans_rate_pct: float = 0.0
    norb_rate_pct: float = 0.0
    drop_rate_pct: float = 0.0
    avg_wait_time_min: float = 0.0


@dataclass(frozen=True)
class SubcampaignRow:
    campaign: str
    subcampaign: str
    period: str = ""
    total_leads: float = 0.0
    dialed: float = 0.0
    connects: float = 0.0
    contacts: float = 0.0
    transfers: float = 0.0
    man_hours: float = 0.0
    connect_rate_pct: float = 0.0
    conversion_rate_pct: float = 0.0
    operator_disconnects: float = 0.0


@dataclass(frozen=True)
class ProductionRow:
    rep: str
    skill: str = ""
    man_hours: float = 0.0
    logged_in_time_min: float = 0.0
    connects: float = 0.0
    contacts: float = 0.0
    transfers: float = 0.0
    dispositions: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ProductionSubcampaignRow:
    subcampaign: str
    ans_machine: float = 0.0
    inbound_voicemail: float = 0.0
    connects: float = 0.0
    contacts: float = 0.0
    sales_count: float = 0.0


@dataclass(frozen=True)
class ShiftReportRow:
    date: str
    campaign: str = ""
    call_status: str = ""
    description: str = ""
    type: str = ""
    calls: float = 0.0
    percent: float = 0.0


ReportRow = Union[
    AgentSummaryRow,
    AgentSummarySubcampaignRow,
    AgentAnalysisRow,
    AgentPauseTimeRow,
    CallsPerHourRow,
    CampaignCallLogRow,
    CampaignSummaryRow,
    SubcampaignRow,
    ProductionRow,
    ProductionSubcampaignRow,
    ShiftReportRow,
]

ROW_TYPES: dict[ReportCategory, type] = {
    ReportCategory.AGENT_SUMMARY: AgentSummaryRow,
    ReportCategory.AGENT_SUMMARY_CAMPAIGN: AgentSummaryRow,
    ReportCategory.AGENT_SUMMARY_SUBCAMPAIGN: AgentSummarySubcampaignRow,
    ReportCategory.AGENT_ANALYSIS: AgentAnalysisRow,
    ReportCategory.AGENT_PAUSE_TIME: AgentPauseTimeRow,
    ReportCategory.CALLS_PER_HOUR: CallsPerHourRow,
    ReportCategory.CAMPAIGN_CALL_LOG: CampaignCallLogRow,
    ReportCategory.CAMPAIGN_SUMMARY: CampaignSummaryRow,
    ReportCategory.SUBCAMPAIGN_SUMMARY: SubcampaignRow,
    ReportCategory.PRODUCTION_REPORT: ProductionRow,
    ReportCategory.PRODUCTION_REPORT_SUBCAMPAIGN: ProductionSubcampaignRow,
    ReportCategory.SHIFT_REPORT: ShiftReportRow,
}


@dataclass(frozen=True)
class ParsedReport:
    """
    In-memory result of decoding one report file.

    ``report_date`` is the end of the covered range: multi-day exports are
    filed under the day their data set ends.
    """

    category: ReportCategory
    filename: str
    date_range_start: date
    date_range_end: date
    rows: tuple[Any, ...] = ()

    @property
    def report_date(self) -> date:
        return self.date_range_end

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_payload(self) -> list[dict[str, Any]]:
        """Serialise rows into JSON-compatible dicts for storage."""
        return [asdict(row) for row in self.rows]

    @classmethod
    def from_payload(
        cls,
        *,
        category: ReportCategory,
        filename: str,
        date_range_start: date,
        date_range_end: date,
        payload: list[dict[str, Any]] | None,
    ) -> ParsedReport:
        """Rebuild a report from a stored payload, ignoring unknown keys."""
        row_type = ROW_TYPES[category]
        known = {f.name for f in fields(row_type)}
        rows = tuple(
            row_type(**{key: value for key, value in item.items() if key in known})
            for item in payload or []
        )
        return cls(
            category=category,
            filename=filename,
            date_range_start=date_range_start,
            date_range_end=date_range_end,
            rows=rows,
        )
