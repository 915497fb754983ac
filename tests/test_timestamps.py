"""Tests for timestamp normalization.

Malformed input must never raise; it comes back as the current time with
`estimated=True`.
"""

from datetime import datetime

import pytest

from rapport.timestamps import (
    DAY_FIRST,
    MONTH_FIRST,
    normalize_day_first,
    normalize_iso,
    normalize_month_first,
    normalize_timestamp,
)


class TestMonthFirst:
    def test_two_digit_year_and_pm(self):
        result = normalize_month_first("12/31/20", "11:59 PM")
        assert result.value == datetime(2020, 12, 31, 23, 59)
        assert result.estimated is False

    def test_midnight_is_zero(self):
        """12 AM is hour 0."""
        assert normalize_month_first("1/1/21", "12:05 AM").value == datetime(2021, 1, 1, 0, 5)

    def test_noon_stays_twelve(self):
        """12 PM is hour 12."""
        assert normalize_month_first("1/1/21", "12:30 pm").value == datetime(2021, 1, 1, 12, 30)

    def test_four_digit_year_with_seconds(self):
        result = normalize_month_first("3/4/2021", "07:08:09")
        assert result.value == datetime(2021, 3, 4, 7, 8, 9)

    def test_dotted_meridiem(self):
        assert normalize_month_first("3/4/21", "9:05 p.m.").value == datetime(2021, 3, 4, 21, 5)

    def test_narrow_no_break_space(self):
        """Newer exports put U+202F between the time and AM/PM."""
        assert normalize_month_first("3/4/21", "9:05\u202fPM").value == datetime(2021, 3, 4, 21, 5)


class TestDayFirst:
    def test_dot_separator(self):
        assert normalize_day_first("31.12.2020", "23:59").value == datetime(2020, 12, 31, 23, 59)

    def test_dash_separator(self):
        assert normalize_day_first("05-06-21", "8:00 am").value == datetime(2021, 6, 5, 8, 0)

    def test_month_first_date_read_day_first_is_estimated(self):
        """12/31 has no 31st month."""
        result = normalize_day_first("12/31/20", "11:59 PM")
        assert result.estimated is True


class TestIso:
    def test_iso_date(self):
        result = normalize_iso("2022-05-15", "14:23:45")
        assert result.value == datetime(2022, 5, 15, 14, 23, 45)
        assert not result.estimated


class TestFailurePolicy:
    @pytest.mark.parametrize("date_token,time_token", [
        ("", ""),
        ("not a date", "11:59"),
        ("12/31", "11:59"),
        ("12/31/20", "noon"),
        ("12/31/20", "25:00"),
        ("12/31/20", "13:00 pm"),
        ("2/30/21", "10:00"),
        ("12/31/20201", "10:00"),
        (None, "10:00"),
    ])
    def test_malformed_input_returns_now(self, date_token, time_token):
        """Never raises, always returns a real datetime flagged as estimated."""
        before = datetime.now()
        result = normalize_timestamp(date_token, time_token, MONTH_FIRST)
        after = datetime.now()
        assert result.estimated is True
        assert isinstance(result.value, datetime)
        assert before <= result.value <= after

    def test_failure_is_logged(self, caplog):
        with caplog.at_level("WARNING", logger="rapport.timestamps"):
            normalize_timestamp("bad", "11:59", DAY_FIRST)
        assert "Unparseable timestamp" in caplog.text

    def test_unknown_kind(self):
        assert normalize_timestamp("12/31/20", "11:59", "lunar").estimated is True
