"""
app/domain package marker.
"""

from app.domain.report_catalog import CategoryRule, ReportCategory, identify_category
from app.domain.report_rows import ParsedReport

__all__ = [
    "CategoryRule",
    "ParsedReport",
    "ReportCategory",
    "identify_category",
]
