"""
app/parsers/report_parser.py

Decodes one dialer export into a :class:`ParsedReport`.

Steps
-----
1. Category from the filename (catalog order, most specific first).
2. Covered date range from the filename; the end date is the report date.
3. Workbook decoding with pandas (``openpyxl`` for xlsx, ``xlrd`` for the
   legacy xls the dialer emails). The ``Report`` sheet is used when
   present, otherwise the first sheet. The first row holds the headers.
4. Category from the header row when the filename did not identify it.
5. Row decoding into the category's typed records. Rows whose key column
   is blank or a ``Total`` line are skipped.

Every failure raises a :class:`ParseError` subclass scoped to the single
file; callers processing a batch catch it and carry on.
"""

from __future__ import annotations

import io
from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

import pandas as pd

from app.domain.report_catalog import (
    DateRangeError,
    ReportCategory,
    identify_category,
    identify_category_from_headers,
)
from app.domain.report_rows import (
    AgentAnalysisRow,
    AgentPauseTimeRow,
    AgentSummaryRow,
    AgentSummarySubcampaignRow,
    CallsPerHourRow,
    CampaignCallLogRow,
    CampaignSummaryRow,
    ParsedReport,
    ProductionRow,
    ProductionSubcampaignRow,
    ShiftReportRow,
    SubcampaignRow,
)
from app.parsers.values import clean_text, parse_minutes, parse_number, parse_percent

_PREFERRED_SHEET = "Report"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0"
_XLSX_MAGIC = b"PK"

# Known ProductionReport columns; every other column is a disposition count.
PRODUCTION_NON_DISPOSITION_COLUMNS: frozenset[str] = frozenset(
    {
        "Rep",
        "Skill",
        "Man Hours",
        "Logged In Time",
        "Connects",
        "Contacts",
        "Contacts/ManHour",
        "Sale/Lead/App",
        "Sales/ManHour",
    }
)

Record = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParseError(ValueError):
    """
    Base class for per-file parse failures.

    ``category`` and ``report_date`` are filled in when they were determined
    before the failure, so the caller can still key a failed ingestion row.
    """

    code = "parse_error"

    def __init__(
        self,
        message: str,
        *,
        filename: str,
        category: ReportCategory | None = None,
        report_date: date | None = None,
    ) -> None:
        super().__init__(message)
        self.filename = filename
        self.category = category
        self.report_date = report_date


class UnrecognizedFormatError(ParseError):
    """The report category could not be determined from name or content."""

    code = "unrecognized_format"


class UnparsableDateError(ParseError):
    """No valid date range could be extracted from the filename."""

    code = "unparsable_date"


class MalformedContentError(ParseError):
    """The workbook or its rows could not be decoded."""

    code = "malformed_content"


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class ReportParser:
    """
    Stateless decoder for dialer exports.

    No database access and no logging; safe to share across requests.
    """

    def parse(self, content: bytes, filename: str) -> ParsedReport:
        """
        Decode *content* and return the typed report.

        Raises
        ------
        UnrecognizedFormatError
            Category unknown from both filename and headers.
        UnparsableDateError
            Missing, invalid or reversed date range in the filename.
        MalformedContentError
            Unreadable workbook, or a required column is missing.
        """
        category = identify_category(filename)

        date_range: tuple[date, date] | None = None
        date_error: DateRangeError | None = None
        # The date rule is shared by every category; any member can extract it.
        rule = (category or ReportCategory.AGENT_SUMMARY).rule
        try:
            date_range = rule.extract_date_range(filename)
        except DateRangeError as exc:
            date_error = exc
        report_date = date_range[1] if date_range else None

        try:
            frame = _read_report_sheet(content, filename)
        except ValueError as exc:
            error_cls = MalformedContentError if category is not None else UnrecognizedFormatError
            raise error_cls(
                f"Unable to read {filename!r} as a spreadsheet: {exc}",
                filename=filename,
                category=category,
                report_date=report_date,
            ) from exc

        if category is None:
            category = identify_category_from_headers(frame.columns)
            if category is None:
                raise UnrecognizedFormatError(
                    f"Report category of {filename!r} could not be determined "
                    "from its filename or header row.",
                    filename=filename,
                    report_date=report_date,
                )

        if date_range is None:
            raise UnparsableDateError(
                str(date_error),
                filename=filename,
                category=category,
            )

        key_column = category.rule.key_column
        if key_column not in frame.columns:
            raise MalformedContentError(
                f"{category.value} report {filename!r} has no {key_column!r} column.",
                filename=filename,
                category=category,
                report_date=report_date,
            )

        records = frame.to_dict(orient="records")
        try:
            rows = _ROW_DECODERS[category](records, list(frame.columns))
        except (TypeError, ValueError, AttributeError) as exc:
            raise MalformedContentError(
                f"Rows of {filename!r} could not be decoded: {exc}",
                filename=filename,
                category=category,
                report_date=report_date,
            ) from exc

        return ParsedReport(
            category=category,
            filename=filename,
            date_range_start=date_range[0],
            date_range_end=date_range[1],
            rows=tuple(rows),
        )


# ---------------------------------------------------------------------------
# Workbook access
# ---------------------------------------------------------------------------


def _engine_for(content: bytes, filename: str) -> str:
    if content.startswith(_XLS_MAGIC):
        return "xlrd"
    if content.startswith(_XLSX_MAGIC):
        return "openpyxl"
    return "xlrd" if filename.lower().endswith(".xls") else "openpyxl"


def _read_report_sheet(content: bytes, filename: str) -> pd.DataFrame:
    """
    Load the report sheet with every cell kept as an object.

    Raises
    ------
    ValueError
        For empty input or anything the reader rejects.
    """
    if not content:
        raise ValueError("file is empty")
    try:
        sheets: dict[str, pd.DataFrame] = pd.read_excel(
            io.BytesIO(content),
            sheet_name=None,
            dtype=object,
            engine=_engine_for(content, filename),
        )
    except Exception as exc:  # noqa: BLE001 - reader backends raise their own error types
        raise ValueError(str(exc) or type(exc).__name__) from exc

    if not sheets:
        raise ValueError("workbook contains no sheets")
    frame = sheets.get(_PREFERRED_SHEET)
    if frame is None:
        frame = next(iter(sheets.values()))
    frame.columns = [str(column).strip() for column in frame.columns]
    return frame


# ---------------------------------------------------------------------------
# Row filters
# ---------------------------------------------------------------------------


def _keep(record: Record, column: str) -> bool:
    """Keep rows whose key column is non-blank and not a Total line."""
    value = clean_text(record.get(column))
    return value != "" and not value.startswith("Total")


# ---------------------------------------------------------------------------
# Category decoders
# ---------------------------------------------------------------------------


def _agent_summary_fields(record: Record) -> dict[str, Any]:
    return {
        "dialed": parse_number(record.get("Dialed")),
        "connects": parse_number(record.get("Connects")),
        "contacts": parse_number(record.get("Contacts")),
        "hours_worked": parse_number(record.get("Hours Worked")),
        "transfers": parse_number(record.get("Sale/Lead/App")),
        "connects_per_hour": parse_number(record.get("Connects per Hour")),
        "sla_hr": parse_number(record.get("S-L-A/HR")),
        "conversion_rate_pct": parse_percent(record.get("Conversion Rate")),
        "talk_time_min": parse_minutes(record.get("Talk Time")),
        "avg_talk_time_min": parse_minutes(record.get("Avg Talk Time")),
        "wait_time_min": parse_minutes(record.get("Wait Time")),
        "avg_wait_time_min": parse_minutes(record.get("Avg Wait Time")),
        "wrap_time_min": parse_minutes(record.get("Wrap Up Time")),
        "avg_wrap_time_min": parse_minutes(record.get("Avg Wrap Up Time")),
        "logged_in_time_min": parse_minutes(record.get("Logged In Time")),
    }


def _decode_agent_summary(records: list[Record], columns: list[str]) -> list[AgentSummaryRow]:
    return [
        AgentSummaryRow(
            rep=clean_text(r.get("Rep")),
            team=clean_text(r.get("Team")) or None,
            **_agent_summary_fields(r),
        )
        for r in records
        if _keep(r, "Rep")
    ]


def _decode_agent_summary_subcampaign(
    records: list[Record], columns: list[str]
) -> list[AgentSummarySubcampaignRow]:
    return [
        AgentSummarySubcampaignRow(
            rep=clean_text(r.get("Rep")),
            campaign=clean_text(r.get("Campaign")),
            subcampaign=clean_text(r.get("Subcampaign")),
            **_agent_summary_fields(r),
        )
        for r in records
        if _keep(r, "Rep")
    ]


def _decode_agent_analysis(records: list[Record], columns: list[str]) -> list[AgentAnalysisRow]:
    return [
        AgentAnalysisRow(
            rep=clean_text(r.get("Rep")),
            date=clean_text(r.get("Date")),
            campaign=clean_text(r.get("Campaign")),
            hours_worked=parse_number(r.get("Hours Worked")),
            contacts=parse_number(r.get("Contacts")),
            connects=parse_number(r.get("Connects")),
            connects_per_hour=parse_number(r.get("Connects per Hour")),
            conversion_rate_pct=parse_percent(r.get("Conversion Rate")),
            conversion_factor=parse_number(r.get("Conversion Factor")),
            transfers=parse_number(r.get("Sale/Lead/App")),
            sla_hr=parse_number(r.get("S-L-A/HR")),
            call_backs=parse_number(r.get("Call Backs")),
            avg_talk_time_min=parse_minutes(r.get("Avg Talk Time")),
            avg_wait_time_min=parse_minutes(r.get("Avg Wait Time")),
            time_avail_min=parse_minutes(r.get("Time Avail")),
            time_paused_min=parse_minutes(r.get("Time Paused")),
            talk_time_min=parse_minutes(r.get("Talk Time")),
            wrap_time_min=parse_minutes(r.get("Wrap Up Time")),
            logged_in_time_min=parse_minutes(r.get("Logged In Time")),
        )
        for r in records
        if _keep(r, "Rep")
    ]


def _decode_agent_pause_time(records: list[Record], columns: list[str]) -> list[AgentPauseTimeRow]:
    return [
        AgentPauseTimeRow(
            rep=clean_text(r.get("Rep")),
            campaign=clean_text(r.get("Campaign")),
            session_login_time=clean_text(r.get("Session Login Time")),
            session_logout_time=clean_text(r.get("Session Logout Time")),
            pause_time=clean_text(r.get("Pause Time")),
            break_code=clean_text(r.get("Break Code")),
            unpause_time=clean_text(r.get("UnPause Time")),
            time_paused=clean_text(r.get("Time Paused")),
            session_man_hours=parse_number(r.get("Session ManHours")),
        )
        for r in records
        if _keep(r, "Rep")
    ]


def _decode_calls_per_hour(records: list[Record], columns: list[str]) -> list[CallsPerHourRow]:
    return [
        CallsPerHourRow(
            hour=clean_text(r.get("Hour")),
            total_calls=parse_number(r.get("Total Calls")),
            connects=parse_number(r.get("Connects")),
            contacts=parse_number(r.get("Contacts")),
            transfers=parse_number(r.get("Sale/Lead/App")),
            conversion_rate_pct=parse_percent(r.get("Conversion Rate")),
            inbound=parse_number(r.get("Inbound")),
            inbound_pct=parse_percent(r.get("Inbound%")),
            abandoned_calls=parse_number(r.get("Abandoned Calls")),
            abandon_rate_pct=parse_percent(r.get("Abandon Rate")),
            outbound=parse_number(r.get("Outbound")),
            outbound_pct=parse_percent(r.get("Outbound%")),
            dropped=parse_number(r.get("Dropped")),
            drop_rate_pct=parse_percent(r.get("Drop Rate")),
            talk_time_min=parse_minutes(r.get("Talk Time")),
            avg_hold_time_min=parse_minutes(r.get("Avg Hold Time")),
            avg_wait_time_min=parse_minutes(r.get("Avg Wait Time")),
            contact_pct=parse_percent(r.get("Contact%")),
        )
        for r in records
        if _keep(r, "Hour")
    ]


def _decode_campaign_call_log(records: list[Record], columns: list[str]) -> list[CampaignCallLogRow]:
    return [
        CampaignCallLogRow(
            call_status=clean_text(r.get("Call Status")),
            description=clean_text(r.get("Description")),
            calls=parse_number(r.get("Calls")),
            percent=parse_percent(r.get("Percent")),
        )
        for r in records
        if _keep(r, "Call Status")
    ]


def _decode_campaign_summary(records: list[Record], columns: list[str]) -> list[CampaignSummaryRow]:
    return [
        CampaignSummaryRow(
            period=clean_text(r.get("Period")),
            campaign=clean_text(r.get("Campaign")),
            campaign_type=clean_text(r.get("Campaign Type")),
            lines_per_agent=parse_number(r.get("Lines per Agent")),
            total_leads=parse_number(r.get("Total Leads")),
            available=parse_number(r.get("Available")),
            dialed=parse_number(r.get("Dialed")),
            dials_per_hr=parse_number(r.get("Dials per Hr")),
            avg_attempts=parse_number(r.get("Avg Attempts")),
            reps=parse_number(r.get("Reps")),
            man_hours=parse_number(r.get("Man Hours")),
            logged_in_time_min=parse_minutes(r.get("Logged In Time")),
            connects=parse_number(r.get("Connects")),
            connect_pct=parse_percent(r.get("Connect %")),
            contacts=parse_number(r.get("Contacts")),
            contact_pct=parse_percent(r.get("Contact%")),
            hangups=parse_number(r.get("Hangups")),
            connects_per_hour=parse_number(r.get("Connects per Hour")),
            conversion_rate_pct=parse_percent(r.get("Conversion Rate")),
            conversion_factor=parse_number(r.get("Conversion Factor")),
            transfers=parse_number(r.get("Sale/Lead/App")),
            sla_hr=parse_number(r.get("S-L-A/HR")),
            noans_rate_pct=parse_percent(r.get("NoAns Rate")),
            norb_rate_pct=parse_percent(r.get("Norb Rate")),
            drop_rate_pct=parse_percent(r.get("Drop Rate")),
            avg_wait_time_min=parse_minutes(r.get("Avg Wait Time")),
        )
        for r in records
        if _keep(r, "Period")
    ]


def _decode_subcampaign_summary(records: list[Record], columns: list[str]) -> list[SubcampaignRow]:
    # Headers sit one column to the right of their data: the value under
    # "Period" is the campaign, under "Campaign" the subcampaign, and so on.
    return [
        SubcampaignRow(
            period=clean_text(r.get("S-L-A Rate Value")),
            campaign=clean_text(r.get("Period")),
            subcampaign=clean_text(r.get("Campaign")),
            total_leads=parse_number(r.get("Subcampaign")),
            dialed=parse_number(r.get("Total Leads")),
            connects=parse_number(r.get("Man Hours")),
            contacts=parse_number(r.get("Connects")),
            transfers=parse_number(r.get("Connects per Hour")),
            man_hours=parse_number(r.get("Avg Attempts")),
            connect_rate_pct=parse_percent(r.get("S-L-A/HR")),
            conversion_rate_pct=parse_percent(r.get("Connect Rate")),
            operator_disconnects=parse_number(r.get("Conversion Factor")),
        )
        for r in records
        if _keep(r, "Period") and clean_text(r.get("Campaign")) != ""
    ]


def _decode_production(records: list[Record], columns: list[str]) -> list[ProductionRow]:
    disposition_columns = [
        column
        for column in columns
        if column not in PRODUCTION_NON_DISPOSITION_COLUMNS and not column.startswith("Unnamed:")
    ]
    rows: list[ProductionRow] = []
    for r in records:
        if not _keep(r, "Rep"):
            continue
        dispositions: dict[str, float] = {}
        for column in disposition_columns:
            value = parse_number(r.get(column))
            if value > 0:
                dispositions[column] = value
        rows.append(
            ProductionRow(
                rep=clean_text(r.get("Rep")),
                skill=clean_text(r.get("Skill")),
                man_hours=parse_number(r.get("Man Hours")),
                logged_in_time_min=parse_minutes(r.get("Logged In Time")),
                connects=parse_number(r.get("Connects")),
                contacts=parse_number(r.get("Contacts")),
                transfers=parse_number(r.get("Sale/Lead/App")),
                dispositions=dispositions,
            )
        )
    return rows


def _decode_production_subcampaign(
    records: list[Record], columns: list[str]
) -> list[ProductionSubcampaignRow]:
    return [
        ProductionSubcampaignRow(
            subcampaign=clean_text(r.get("Subcampaign")),
            ans_machine=parse_number(r.get("Ans. Machine")),
            inbound_voicemail=parse_number(r.get("Inbound Voicemail")),
            connects=parse_number(r.get("Connects")),
            contacts=parse_number(r.get("Contacts")),
            sales_count=parse_number(r.get("SalesCount")),
        )
        for r in records
        if _keep(r, "Subcampaign")
    ]


def _decode_shift_report(records: list[Record], columns: list[str]) -> list[ShiftReportRow]:
    return [
        ShiftReportRow(
            date=clean_text(r.get("Date")),
            campaign=clean_text(r.get("Campaign")),
            call_status=clean_text(r.get("Call Status")),
            description=clean_text(r.get("Description")),
            type=clean_text(r.get("Type")),
            calls=parse_number(r.get("Calls")),
            percent=parse_percent(r.get("Percent")),
        )
        for r in records
        if _keep(r, "Date")
    ]


_ROW_DECODERS: dict[ReportCategory, Callable[[list[Record], list[str]], list[Any]]] = {
    ReportCategory.AGENT_SUMMARY: _decode_agent_summary,
    ReportCategory.AGENT_SUMMARY_CAMPAIGN: _decode_agent_summary,
    ReportCategory.AGENT_SUMMARY_SUBCAMPAIGN: _decode_agent_summary_subcampaign,
    ReportCategory.AGENT_ANALYSIS: _decode_agent_analysis,
    ReportCategory.AGENT_PAUSE_TIME: _decode_agent_pause_time,
    ReportCategory.CALLS_PER_HOUR: _decode_calls_per_hour,
    ReportCategory.CAMPAIGN_CALL_LOG: _decode_campaign_call_log,
    ReportCategory.CAMPAIGN_SUMMARY: _decode_campaign_summary,
    ReportCategory.SUBCAMPAIGN_SUMMARY: _decode_subcampaign_summary,
    ReportCategory.PRODUCTION_REPORT: _decode_production,
    ReportCategory.PRODUCTION_REPORT_SUBCAMPAIGN: _decode_production_subcampaign,
    ReportCategory.SHIFT_REPORT: _decode_shift_report,
}
