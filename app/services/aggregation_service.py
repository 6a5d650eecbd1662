"""
app/services/aggregation_service.py

Data aggregation layer for dialer KPI calculations.

Rebuilds the typed report rows stored for a date and arranges them into the
input dictionary expected by :class:`kpi.dialer.DialerKPIFormula`.

Input key conventions
---------------------
Each report category feeds one formula input key:

    AgentSummary                -> agent_summary
    AgentSummaryCampaign        -> agent_summary_campaign
    AgentSummarySubcampaign     -> agent_summary_subcampaign
    AgentAnalysis               -> agent_analysis
    AgentPauseTime              -> agent_pause_time
    CallsPerHour                -> calls_per_hour
    CampaignCallLog             -> campaign_call_log
    CampaignSummary             -> campaign_summary
    SubcampaignSummary          -> subcampaign
    ProductionReport            -> production
    ProductionReportSubcampaign -> production_subcampaign
    ShiftReport                 -> shift_report

No business logic lives here. Joins, formulas and result structuring
belong to the formula module.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Final

from sqlalchemy.orm import Session

from app.domain.report_catalog import ReportCategory
from app.domain.report_rows import ParsedReport
from db.models.daily_kpi import DailyKPI
from db.repositories.daily_kpi_repository import DailyKPIRepository
from db.repositories.report_repository import ReportRepository

logger = logging.getLogger(__name__)

INPUT_KEYS: Final[dict[ReportCategory, str]] = {
    ReportCategory.AGENT_SUMMARY: "agent_summary",
    ReportCategory.AGENT_SUMMARY_CAMPAIGN: "agent_summary_campaign",
    ReportCategory.AGENT_SUMMARY_SUBCAMPAIGN: "agent_summary_subcampaign",
    ReportCategory.AGENT_ANALYSIS: "agent_analysis",
    ReportCategory.AGENT_PAUSE_TIME: "agent_pause_time",
    ReportCategory.CALLS_PER_HOUR: "calls_per_hour",
    ReportCategory.CAMPAIGN_CALL_LOG: "campaign_call_log",
    ReportCategory.CAMPAIGN_SUMMARY: "campaign_summary",
    ReportCategory.SUBCAMPAIGN_SUMMARY: "subcampaign",
    ReportCategory.PRODUCTION_REPORT: "production",
    ReportCategory.PRODUCTION_REPORT_SUBCAMPAIGN: "production_subcampaign",
    ReportCategory.SHIFT_REPORT: "shift_report",
}

# Columns copied from a DailyKPI row into the dicts used for deltas and trends.
_HISTORY_FIELDS: Final[tuple[str, ...]] = (
    "report_date",
    "total_dials",
    "total_connects",
    "total_contacts",
    "total_transfers",
    "total_man_hours",
    "connect_rate",
    "contact_rate",
    "conversion_rate",
    "transfers_per_hour",
    "dials_per_hour",
    "dead_air_ratio",
    "hung_up_ratio",
    "waste_rate",
    "transfer_success_rate",
)


def daily_to_dict(row: DailyKPI) -> dict[str, Any]:
    return {name: getattr(row, name) for name in _HISTORY_FIELDS}


class AggregationService:
    """
    Reads stored reports and prior daily snapshots for one computation.

    Bound to a request-scoped session; instantiate per call.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def load_reports(self, report_date: date) -> dict[ReportCategory, ParsedReport]:
        """
        Every authoritative report for *report_date*, keyed by category.

        Always read from the stored ReportFile rows, so two runs over the
        same rows produce the same result whichever batch triggered them.
        """
        reports: dict[ReportCategory, ParsedReport] = {}
        for row in ReportRepository(self._db).list_completed_for_date(report_date):
            try:
                category = ReportCategory(row.report_type)
            except ValueError:
                logger.warning(
                    "load_reports skipping row id=%s with unknown category %r",
                    row.id,
                    row.report_type,
                )
                continue
            reports[category] = ParsedReport.from_payload(
                category=category,
                filename=row.filename,
                date_range_start=row.date_range_start,
                date_range_end=row.date_range_end,
                payload=row.parsed_payload,
            )

        logger.debug(
            "load_reports date=%s categories=%d",
            report_date.isoformat(),
            len(reports),
        )
        return reports

    def get_previous_daily(self, report_date: date) -> dict[str, Any] | None:
        """Nearest computed day strictly before *report_date*, or None."""
        row = DailyKPIRepository(self._db).get_previous(report_date)
        return daily_to_dict(row) if row is not None else None

    def get_history(self, report_date: date, *, window: int) -> list[dict[str, Any]]:
        """Up to *window* computed days before *report_date*, newest first."""
        rows = DailyKPIRepository(self._db).list_history(report_date, limit=window)
        return [daily_to_dict(row) for row in rows]


def build_formula_inputs(reports: dict[ReportCategory, ParsedReport]) -> dict[str, list[Any]]:
    """Map category reports to formula input keys; absent categories become []."""
    inputs: dict[str, list[Any]] = {key: [] for key in INPUT_KEYS.values()}
    for category, parsed in reports.items():
        inputs[INPUT_KEYS[category]] = list(parsed.rows)
    return inputs
