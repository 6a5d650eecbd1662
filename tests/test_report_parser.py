"""
tests/test_report_parser.py

Parser tests over workbooks built in memory with openpyxl.

Coverage
--------
- Category from filename, including the most-specific-first ordering
- Category from the header row when the filename is anonymous
- Date range extraction and its failure modes
- Row filtering (blank and Total lines)
- Shifted SubcampaignSummary headers
- Production disposition columns
- Unreadable content
"""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.report_catalog import (
    ReportCategory,
    identify_category,
    identify_category_from_headers,
    parse_category_names,
)
from app.domain.report_rows import ParsedReport
from app.parsers import (
    MalformedContentError,
    ReportParser,
    UnparsableDateError,
    UnrecognizedFormatError,
)
from tests.conftest import (
    AGENT_SUMMARY_HEADERS,
    PRODUCTION_HEADERS,
    agent_summary_rows,
    filename_for,
    make_xlsx,
    production_rows,
    report_files,
)


@pytest.fixture()
def parser() -> ReportParser:
    return ReportParser()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TestIdentifyCategory:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("AgentSummary_01-15-2026_01-15-2026.xls", ReportCategory.AGENT_SUMMARY),
            ("AgentSummaryCampaign_01-15-2026_01-15-2026.xls", ReportCategory.AGENT_SUMMARY_CAMPAIGN),
            ("AgentSummarySubcampaign_01-15-2026_01-15-2026.xls", ReportCategory.AGENT_SUMMARY_SUBCAMPAIGN),
            ("ProductionReport_01-15-2026_01-15-2026.xls", ReportCategory.PRODUCTION_REPORT),
            ("ProductionReportSubcampaign_01-15-2026_01-15-2026.xls", ReportCategory.PRODUCTION_REPORT_SUBCAMPAIGN),
            ("SubcampaignSummary_01-15-2026_01-15-2026.xls", ReportCategory.SUBCAMPAIGN_SUMMARY),
            ("campaignsummary_01-15-2026_01-15-2026.xls", ReportCategory.CAMPAIGN_SUMMARY),
        ],
    )
    def test_filename_patterns(self, filename: str, expected: ReportCategory) -> None:
        assert identify_category(filename) is expected

    def test_unknown_filename(self) -> None:
        assert identify_category("export_01-15-2026_01-15-2026.xls") is None

    def test_headers_pick_largest_signature(self) -> None:
        headers = ["Date", "Campaign", "Call Status", "Description", "Type", "Calls", "Percent"]
        assert identify_category_from_headers(headers) is ReportCategory.SHIFT_REPORT

    def test_headers_tie_is_unrecognized(self) -> None:
        headers = [
            "Rep", "Session Login Time", "Break Code", "Session ManHours",
            "Hour", "Total Calls", "Inbound", "Outbound",
        ]
        assert identify_category_from_headers(headers) is None

    def test_parse_category_names(self) -> None:
        assert parse_category_names(" AgentSummary, ShiftReport,AgentSummary ") == (
            ReportCategory.AGENT_SUMMARY,
            ReportCategory.SHIFT_REPORT,
        )

    def test_parse_category_names_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown report categories"):
            parse_category_names("AgentSummary,Bogus")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class TestDateRange:
    def test_report_date_is_range_end(self, parser: ReportParser) -> None:
        content = make_xlsx(AGENT_SUMMARY_HEADERS, agent_summary_rows())
        report = parser.parse(content, "AgentSummary_01-14-2026_01-15-2026.xlsx")
        assert report.date_range_start == date(2026, 1, 14)
        assert report.report_date == date(2026, 1, 15)

    @pytest.mark.parametrize(
        "filename",
        [
            "AgentSummary_report.xlsx",
            "AgentSummary_02-30-2026_02-30-2026.xlsx",
            "AgentSummary_01-16-2026_01-15-2026.xlsx",
        ],
    )
    def test_bad_ranges_raise(self, parser: ReportParser, filename: str) -> None:
        content = make_xlsx(AGENT_SUMMARY_HEADERS, agent_summary_rows())
        with pytest.raises(UnparsableDateError) as exc_info:
            parser.parse(content, filename)
        assert exc_info.value.category is ReportCategory.AGENT_SUMMARY
        assert exc_info.value.code == "unparsable_date"


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


class TestRows:
    def test_agent_summary_skips_blank_and_total_rows(self, parser: ReportParser) -> None:
        content = make_xlsx(AGENT_SUMMARY_HEADERS, agent_summary_rows())
        report = parser.parse(content, filename_for(ReportCategory.AGENT_SUMMARY))

        assert report.category is ReportCategory.AGENT_SUMMARY
        assert [row.rep for row in report.rows] == ["Alice", "Bob", "QA Carol"]
        alice = report.rows[0]
        assert alice.dialed == 500
        assert alice.transfers == 8
        assert alice.conversion_rate_pct == 20.0
        assert alice.talk_time_min == 120.0
        assert alice.logged_in_time_min == 480.0

    def test_total_match_is_case_sensitive(self, parser: ReportParser) -> None:
        rows = agent_summary_rows()[:1] + [
            ["Totals", None, 1000, 100, 75, 17, 11] + [None] * 6,
            ["TOTAL", None, 1000, 100, 75, 17, 11] + [None] * 6,
        ]
        report = parser.parse(make_xlsx(AGENT_SUMMARY_HEADERS, rows), filename_for(ReportCategory.AGENT_SUMMARY))

        assert [row.rep for row in report.rows] == ["Alice", "TOTAL"]

    def test_production_dispositions_exclude_known_and_zero_columns(self, parser: ReportParser) -> None:
        content = make_xlsx(PRODUCTION_HEADERS, production_rows())
        report = parser.parse(content, filename_for(ReportCategory.PRODUCTION_REPORT))

        alice, bob, carol = report.rows
        assert alice.skill == "Medicare"
        assert alice.dispositions == {
            "Dead Air": 5.0,
            "Hung Up Transfer": 1.0,
            "Transfer": 8.0,
            "Not Interested": 10.0,
        }
        assert "Hung Up Transfer" not in bob.dispositions
        assert carol.dispositions == {}

    def test_subcampaign_summary_headers_are_shifted(self, parser: ReportParser) -> None:
        filename, content = report_files(categories=[ReportCategory.SUBCAMPAIGN_SUMMARY])[0]
        report = parser.parse(content, filename)

        (row,) = report.rows
        assert row.campaign == "MEDICARE"
        assert row.subcampaign == "MED-A"
        assert row.total_leads == 1000
        assert row.dialed == 900
        assert row.connects == 90
        assert row.contacts == 70
        assert row.transfers == 11
        assert row.man_hours == 14

    def test_prefers_report_sheet(self, parser: ReportParser) -> None:
        content = make_xlsx(
            AGENT_SUMMARY_HEADERS,
            agent_summary_rows(),
            extra_sheets=["Summary"],
        )
        report = parser.parse(content, filename_for(ReportCategory.AGENT_SUMMARY))
        assert report.row_count == 3

    def test_every_category_parses(self, parser: ReportParser) -> None:
        for filename, content in report_files():
            report = parser.parse(content, filename)
            assert report.row_count > 0, filename

    def test_payload_round_trip_keeps_rows(self, parser: ReportParser) -> None:
        content = make_xlsx(PRODUCTION_HEADERS, production_rows())
        report = parser.parse(content, filename_for(ReportCategory.PRODUCTION_REPORT))
        rebuilt = ParsedReport.from_payload(
            category=report.category,
            filename=report.filename,
            date_range_start=report.date_range_start,
            date_range_end=report.date_range_end,
            payload=report.to_payload(),
        )
        assert rebuilt == report


# ---------------------------------------------------------------------------
# Content identification and failures
# ---------------------------------------------------------------------------


class TestContent:
    def test_anonymous_filename_uses_headers(self, parser: ReportParser) -> None:
        content = make_xlsx(AGENT_SUMMARY_HEADERS, agent_summary_rows())
        report = parser.parse(content, "daily_export_01-15-2026_01-15-2026.xlsx")
        assert report.category is ReportCategory.AGENT_SUMMARY

    def test_unknown_headers_are_unrecognized(self, parser: ReportParser) -> None:
        content = make_xlsx(["Foo", "Bar"], [[1, 2]])
        with pytest.raises(UnrecognizedFormatError) as exc_info:
            parser.parse(content, "daily_export_01-15-2026_01-15-2026.xlsx")
        assert exc_info.value.report_date == date(2026, 1, 15)

    def test_garbage_with_known_name_is_malformed(self, parser: ReportParser) -> None:
        with pytest.raises(MalformedContentError) as exc_info:
            parser.parse(b"not a spreadsheet", filename_for(ReportCategory.AGENT_SUMMARY))
        assert exc_info.value.category is ReportCategory.AGENT_SUMMARY
        assert exc_info.value.report_date == date(2026, 1, 15)

    def test_garbage_with_unknown_name_is_unrecognized(self, parser: ReportParser) -> None:
        with pytest.raises(UnrecognizedFormatError):
            parser.parse(b"hello", "notes.txt")

    def test_missing_key_column_is_malformed(self, parser: ReportParser) -> None:
        content = make_xlsx(["Team", "Dialed"], [["A", 10]])
        with pytest.raises(MalformedContentError, match="'Rep'"):
            parser.parse(content, filename_for(ReportCategory.AGENT_SUMMARY))
