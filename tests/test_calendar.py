"""Tests for the holiday calendar."""

from datetime import date

import pytest

from library_circulation.rules.calendar import HolidayCalendar

SUNDAY = 6
NEW_YEAR = date(2024, 1, 1)


@pytest.fixture
def calendar() -> HolidayCalendar:
    return HolidayCalendar(
        holiday_weekdays=frozenset({SUNDAY}), holiday_dates=frozenset({NEW_YEAR})
    )


class TestHolidayCalendar:
    def test_weekly_and_explicit_holidays(self, calendar):
        assert calendar.is_holiday(date(2024, 1, 7))  # Sunday
        assert calendar.is_holiday(NEW_YEAR)  # Monday, explicit
        assert not calendar.is_holiday(date(2024, 1, 2))

    def test_next_date_is_plain_addition(self, calendar):
        assert calendar.next_date(4, date(2024, 1, 3)) == date(2024, 1, 7)
        assert calendar.next_date(0, date(2024, 1, 3)) == date(2024, 1, 3)

    def test_next_non_holiday_date_skips_runs_of_holidays(self, calendar):
        # Sunday 31 Dec then the New Year holiday on Monday
        assert calendar.next_non_holiday_date(date(2023, 12, 31)) == date(2024, 1, 2)

    def test_next_non_holiday_date_keeps_open_days(self, calendar):
        assert calendar.next_non_holiday_date(date(2024, 1, 5)) == date(2024, 1, 5)

    def test_due_date_lands_after_holidays(self, calendar):
        # Wednesday + 4 days is a Sunday
        assert calendar.due_date(4, date(2024, 1, 3)) == date(2024, 1, 8)

    def test_count_holidays_excludes_start_includes_end(self, calendar):
        assert calendar.count_holidays_between(date(2024, 1, 7), date(2024, 1, 14)) == 1
        assert calendar.count_holidays_between(date(2024, 1, 6), date(2024, 1, 7)) == 1
        assert calendar.count_holidays_between(date(2023, 12, 30), date(2024, 1, 2)) == 2

    def test_count_holidays_empty_interval(self, calendar):
        assert calendar.count_holidays_between(date(2024, 1, 7), date(2024, 1, 7)) == 0
        assert calendar.count_holidays_between(date(2024, 1, 10), date(2024, 1, 5)) == 0

    def test_calendar_without_holidays(self):
        calendar = HolidayCalendar()

        assert not calendar.is_holiday(date(2024, 1, 7))
        assert calendar.due_date(4, date(2024, 1, 3)) == date(2024, 1, 7)

    def test_all_weekdays_closed_rejected(self):
        with pytest.raises(ValueError, match="At least one weekday must be open"):
            HolidayCalendar(holiday_weekdays=frozenset(range(7)))
