"""Tests for period boundaries and date labels."""

from datetime import date, datetime, timedelta

import pytest

from financeflow.ledger import periods
from tests.factories import NOW


class TestRanges:

    def test_month_range(self):
        june = periods.month_range(NOW)
        assert june.start == datetime(2024, 6, 1)
        assert june.end == datetime(2024, 6, 30, 23, 59, 59, 999999)

    def test_month_range_leap_february(self):
        feb = periods.month_range(date(2024, 2, 10))
        assert feb.end.date() == date(2024, 2, 29)

    def test_month_range_december(self):
        dec = periods.month_range(datetime(2023, 12, 31, 23, 0))
        assert dec.start == datetime(2023, 12, 1)
        assert dec.end.date() == date(2023, 12, 31)

    def test_week_starts_monday(self):
        """12 June 2024 is a Wednesday."""
        week = periods.week_range(NOW)
        assert week.start == datetime(2024, 6, 10)
        assert week.end == datetime(2024, 6, 16, 23, 59, 59, 999999)

    def test_week_range_on_sunday(self):
        week = periods.week_range(datetime(2024, 6, 16, 22))
        assert week.start == datetime(2024, 6, 10)

    def test_week_range_on_monday(self):
        week = periods.week_range(datetime(2024, 6, 17, 0, 0))
        assert week.start == datetime(2024, 6, 17)

    def test_year_range(self):
        year = periods.year_range(NOW)
        assert year.start == datetime(2024, 1, 1)
        assert year.end == datetime(2024, 12, 31, 23, 59, 59, 999999)

    def test_ranges_are_deterministic_for_fixed_now(self):
        assert periods.month_range(NOW) == periods.month_range(NOW)

    @pytest.mark.parametrize("moment,expected", [
        (datetime(2024, 2, 1), 29),
        (datetime(2023, 2, 1), 28),
        (datetime(2024, 6, 12), 30),
        (datetime(2024, 7, 12), 31),
    ])
    def test_days_in_month(self, moment, expected):
        assert periods.days_in_month(moment) == expected

    def test_day_of_month(self):
        assert periods.day_of_month(NOW) == 12


class TestLabels:

    def test_format_date_today_and_yesterday(self):
        assert periods.format_date(NOW.replace(hour=1), NOW) == "Today"
        assert periods.format_date(NOW - timedelta(days=1), NOW) == "Yesterday"
        assert periods.format_date(datetime(2024, 3, 5), NOW) == "05 Mar"

    def test_format_full_date(self):
        assert periods.format_full_date(datetime(2024, 3, 5, 14)) == "05 Mar 2024"

    def test_input_round_trip(self):
        assert periods.format_date_for_input(NOW) == "2024-06-12"
        assert periods.parse_date_from_input(" 2024-06-12 ") == datetime(2024, 6, 12)

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(ValueError):
            periods.parse_date_from_input("12/06/2024")

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(days=2), "2d ago"),
    ])
    def test_time_ago(self, delta, expected):
        assert periods.time_ago(NOW - delta, NOW) == expected

    def test_time_ago_falls_back_to_date(self):
        assert periods.time_ago(datetime(2024, 5, 1), NOW) == "01 May"

    def test_month_name_is_zero_based(self):
        assert periods.month_name(0) == "January"
        assert periods.month_name(11) == "December"
