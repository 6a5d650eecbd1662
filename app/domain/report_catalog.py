"""
app/domain/report_catalog.py

Static catalog of dialer report categories.

Every export the dialer produces belongs to exactly one
:class:`ReportCategory`. Each member carries a :class:`CategoryRule` with
its filename pattern, the date-range extraction rule and the header
signature used when the filename alone does not identify the report.

Member order is match order: more specific patterns come first so that
``AgentSummarySubcampaign_...`` is never mistaken for ``AgentSummary_...``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

# MM-DD-YYYY_MM-DD-YYYY, e.g. "AgentSummary_01-14-2026_01-15-2026.xls"
_DATE_RANGE_PATTERN = re.compile(r"(\d{2}-\d{2}-\d{4})_(\d{2}-\d{2}-\d{4})")
_FILENAME_DATE_FORMAT = "%m-%d-%Y"


class DateRangeError(ValueError):
    """Raised when a filename carries no usable date range."""


@dataclass(frozen=True)
class CategoryRule:
    """
    Identification rules for one report category.

    Attributes
    ----------
    filename_pattern:
        Case-insensitive pattern matched anywhere in the filename.
    key_column:
        Column that must be present and non-empty for a row to be kept.
    signature:
        Header names that together identify the category from content.
    date_pattern:
        Pattern whose two groups are the start and end of the covered range.
    """

    filename_pattern: re.Pattern[str]
    key_column: str
    signature: frozenset[str]
    date_pattern: re.Pattern[str] = _DATE_RANGE_PATTERN

    def matches_filename(self, filename: str) -> bool:
        return self.filename_pattern.search(filename) is not None

    def matches_headers(self, headers: Iterable[str]) -> bool:
        return self.signature.issubset(set(headers))

    def extract_date_range(self, filename: str) -> tuple[date, date]:
        """
        Return ``(start, end)`` parsed from *filename*.

        Raises
        ------
        DateRangeError
            When no range is present, a date is not a real calendar date,
            or the range runs backwards.
        """
        match = self.date_pattern.search(filename)
        if match is None:
            raise DateRangeError(f"No MM-DD-YYYY_MM-DD-YYYY date range in filename {filename!r}.")
        try:
            start = datetime.strptime(match.group(1), _FILENAME_DATE_FORMAT).date()
            end = datetime.strptime(match.group(2), _FILENAME_DATE_FORMAT).date()
        except ValueError as exc:
            raise DateRangeError(f"Invalid calendar date in filename {filename!r}.") from exc
        if start > end:
            raise DateRangeError(
                f"Date range in filename {filename!r} starts after it ends "
                f"({start.isoformat()} > {end.isoformat()})."
            )
        return start, end


class ReportCategory(str, Enum):
    AGENT_SUMMARY_SUBCAMPAIGN = "AgentSummarySubcampaign"
    AGENT_SUMMARY_CAMPAIGN = "AgentSummaryCampaign"
    AGENT_SUMMARY = "AgentSummary"
    AGENT_ANALYSIS = "AgentAnalysis"
    AGENT_PAUSE_TIME = "AgentPauseTime"
    SUBCAMPAIGN_SUMMARY = "SubcampaignSummary"
    CAMPAIGN_CALL_LOG = "CampaignCallLog"
    CAMPAIGN_SUMMARY = "CampaignSummary"
    PRODUCTION_REPORT_SUBCAMPAIGN = "ProductionReportSubcampaign"
    PRODUCTION_REPORT = "ProductionReport"
    CALLS_PER_HOUR = "CallsPerHour"
    SHIFT_REPORT = "ShiftReport"

    @property
    def rule(self) -> CategoryRule:
        return _RULES[self]


def _rule(pattern: str, key_column: str, *signature: str) -> CategoryRule:
    return CategoryRule(
        filename_pattern=re.compile(pattern, re.IGNORECASE),
        key_column=key_column,
        signature=frozenset(signature),
    )


_RULES: dict[ReportCategory, CategoryRule] = {
    ReportCategory.AGENT_SUMMARY_SUBCAMPAIGN: _rule(
        r"AgentSummarySubcampaign", "Rep",
        "Campaign", "Subcampaign", "Rep", "Dialed", "Hours Worked", "Sale/Lead/App",
    ),
    ReportCategory.AGENT_SUMMARY_CAMPAIGN: _rule(
        r"AgentSummaryCampaign", "Rep",
        "Rep", "Dialed", "Hours Worked", "Sale/Lead/App",
    ),
    ReportCategory.AGENT_SUMMARY: _rule(
        r"AgentSummary_", "Rep",
        "Rep", "Team", "Dialed", "Hours Worked", "Sale/Lead/App",
    ),
    ReportCategory.AGENT_ANALYSIS: _rule(
        r"AgentAnalysis", "Rep",
        "Date", "Rep", "Campaign", "Hours Worked", "Conversion Factor", "Call Backs",
    ),
    ReportCategory.AGENT_PAUSE_TIME: _rule(
        r"AgentPauseTime", "Rep",
        "Rep", "Session Login Time", "Break Code", "Session ManHours",
    ),
    # Exported with an extra leading column, so every header is shifted by one.
    ReportCategory.SUBCAMPAIGN_SUMMARY: _rule(
        r"SubcampaignSummary", "Period",
        "S-L-A Rate Value", "Period", "Campaign", "Subcampaign",
    ),
    ReportCategory.CAMPAIGN_CALL_LOG: _rule(
        r"CampaignCallLog", "Call Status",
        "Call Status", "Description", "Calls", "Percent",
    ),
    ReportCategory.CAMPAIGN_SUMMARY: _rule(
        r"CampaignSummary", "Period",
        "Period", "Campaign", "Campaign Type", "Dialed", "Man Hours",
    ),
    ReportCategory.PRODUCTION_REPORT_SUBCAMPAIGN: _rule(
        r"ProductionReportSubcampaign", "Subcampaign",
        "Subcampaign", "Ans. Machine", "SalesCount",
    ),
    ReportCategory.PRODUCTION_REPORT: _rule(
        r"ProductionReport_", "Rep",
        "Rep", "Skill", "Man Hours", "Sale/Lead/App",
    ),
    ReportCategory.CALLS_PER_HOUR: _rule(
        r"CallsPerHour", "Hour",
        "Hour", "Total Calls", "Inbound", "Outbound",
    ),
    ReportCategory.SHIFT_REPORT: _rule(
        r"ShiftReport", "Date",
        "Date", "Campaign", "Call Status", "Description", "Type", "Calls", "Percent",
    ),
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def identify_category(filename: str) -> ReportCategory | None:
    """Return the first category whose filename pattern matches, else None."""
    for category in ReportCategory:
        if category.rule.matches_filename(filename):
            return category
    return None


def identify_category_from_headers(headers: Iterable[str]) -> ReportCategory | None:
    """
    Identify a category from a decoded header row.

    The category with the largest matching signature wins. Returns None
    when nothing matches or when two categories tie for the best match.
    """
    header_set = {str(header).strip() for header in headers}
    matches = [category for category in ReportCategory if category.rule.matches_headers(header_set)]
    if not matches:
        return None
    matches.sort(key=lambda category: len(category.rule.signature), reverse=True)
    if len(matches) > 1 and len(matches[0].rule.signature) == len(matches[1].rule.signature):
        return None
    return matches[0]


def parse_category_names(raw: str) -> tuple[ReportCategory, ...]:
    """
    Parse a comma-separated list of category values.

    Raises
    ------
    ValueError
        If any name is not a catalog member.
    """
    names = [token.strip() for token in raw.split(",") if token.strip()]
    valid = {category.value: category for category in ReportCategory}
    unknown = [name for name in names if name not in valid]
    if unknown:
        raise ValueError(
            f"Unknown report categories {unknown}. Valid values: {sorted(valid)}."
        )
    seen: dict[ReportCategory, None] = {}
    for name in names:
        seen.setdefault(valid[name], None)
    return tuple(seen)
