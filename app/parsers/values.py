"""
app/parsers/values.py

Cell value normalisation for dialer exports.

Exports mix real numbers with display strings (``"1,204"``, ``"45.2%"``,
``"112:05:30"``). Every helper returns a neutral value (``0.0`` or ``""``)
for blanks and unreadable cells instead of raising.
"""

from __future__ import annotations

import math
import re
from datetime import time, timedelta
from typing import Any

import pandas as pd

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def clean_text(value: Any) -> str:
    """Return the cell as a stripped string; integral floats lose their ``.0``."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_number(value: Any) -> float:
    """Parse a count or decimal, tolerating thousands separators."""
    if is_blank(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return 0.0 if math.isnan(number) or math.isinf(number) else number
    cleaned = str(value).replace(",", "").strip()
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return 0.0
    return float(match.group(0))


def parse_percent(value: Any) -> float:
    """Parse ``"45.2%"`` (or ``45.2``) into ``45.2``."""
    if isinstance(value, str):
        value = value.replace("%", "")
    return parse_number(value)


def parse_minutes(value: Any) -> float:
    """
    Convert a duration to minutes.

    Accepts ``H:MM:SS`` strings with any number of hour digits, as well as
    the ``time`` and ``timedelta`` objects spreadsheet readers produce for
    duration-formatted cells. Anything else is ``0.0``.
    """
    if isinstance(value, timedelta):
        return value.total_seconds() / 60
    if isinstance(value, time):
        return value.hour * 60 + value.minute + value.second / 60
    if not isinstance(value, str) or ":" not in value:
        return 0.0
    parts = value.strip().split(":")
    if len(parts) != 3:
        return 0.0
    try:
        hours, minutes, seconds = (int(part) for part in parts)
    except ValueError:
        return 0.0
    return hours * 60 + minutes + seconds / 60


def disposition_key(column: str) -> str:
    """
    Normalise a disposition column or call status into a metric key.

    ``"Ans. Machine"`` -> ``"ans_machine"``, ``"Hung Up Transfer"`` ->
    ``"hung_up_transfer"``.
    """
    key = column.lower().replace(".", "")
    key = re.sub(r"\s+", "_", key)
    return key.replace("-", "_").replace("/", "_")
