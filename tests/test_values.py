from __future__ import annotations

import math
import unittest
from datetime import time, timedelta

from app.parsers.values import (
    clean_text,
    disposition_key,
    is_blank,
    parse_minutes,
    parse_number,
    parse_percent,
)


class TestParseNumber(unittest.TestCase):
    def test_strips_thousands_separators(self) -> None:
        self.assertEqual(parse_number("1,204"), 1204.0)
        self.assertEqual(parse_number("12,345.5"), 12345.5)

    def test_passes_through_numeric_cells(self) -> None:
        self.assertEqual(parse_number(7), 7.0)
        self.assertEqual(parse_number(2.5), 2.5)

    def test_blank_and_garbage_are_zero(self) -> None:
        for value in (None, "", "   ", "n/a", float("nan"), True):
            with self.subTest(value=value):
                self.assertEqual(parse_number(value), 0.0)

    def test_reads_leading_number_only(self) -> None:
        self.assertEqual(parse_number("45 calls"), 45.0)


class TestParsePercent(unittest.TestCase):
    def test_percent_sign_is_dropped(self) -> None:
        self.assertEqual(parse_percent("45.2%"), 45.2)

    def test_plain_number_is_kept(self) -> None:
        self.assertEqual(parse_percent(12), 12.0)

    def test_blank_is_zero(self) -> None:
        self.assertEqual(parse_percent(None), 0.0)


class TestParseMinutes(unittest.TestCase):
    def test_hms_string(self) -> None:
        self.assertEqual(parse_minutes("1:30:00"), 90.0)
        self.assertEqual(parse_minutes("0:00:30"), 0.5)

    def test_hours_may_exceed_two_digits(self) -> None:
        self.assertEqual(parse_minutes("112:05:30"), 112 * 60 + 5 + 0.5)

    def test_time_and_timedelta_cells(self) -> None:
        self.assertEqual(parse_minutes(time(hour=2, minute=15)), 135.0)
        self.assertEqual(parse_minutes(timedelta(hours=1, seconds=30)), 60.5)

    def test_unreadable_values_are_zero(self) -> None:
        for value in (None, "", "90", "1:30", "a:b:c", 42):
            with self.subTest(value=value):
                self.assertEqual(parse_minutes(value), 0.0)


class TestTextHelpers(unittest.TestCase):
    def test_clean_text_drops_integral_float_suffix(self) -> None:
        self.assertEqual(clean_text(1234.0), "1234")
        self.assertEqual(clean_text("  Alice "), "Alice")

    def test_clean_text_blank(self) -> None:
        self.assertEqual(clean_text(None), "")
        self.assertEqual(clean_text(math.nan), "")

    def test_is_blank(self) -> None:
        self.assertTrue(is_blank(None))
        self.assertTrue(is_blank("  "))
        self.assertFalse(is_blank(0))

    def test_disposition_key(self) -> None:
        self.assertEqual(disposition_key("Ans. Machine"), "ans_machine")
        self.assertEqual(disposition_key("Hung Up Transfer"), "hung_up_transfer")
        self.assertEqual(disposition_key("Sale/Lead/App"), "sale_lead_app")
        self.assertEqual(disposition_key("Call-Back"), "call_back")


if __name__ == "__main__":
    unittest.main()
