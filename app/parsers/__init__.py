"""
app/parsers package marker.
"""

from app.parsers.report_parser import (
    MalformedContentError,
    ParseError,
    ReportParser,
    UnparsableDateError,
    UnrecognizedFormatError,
)

__all__ = [
    "MalformedContentError",
    "ParseError",
    "ReportParser",
    "UnparsableDateError",
    "UnrecognizedFormatError",
]
