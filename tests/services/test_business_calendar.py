"""
Tests for business-day adjustment.

Weekends and fixed month-day holidays are skipped.
"""

from datetime import date, datetime, timedelta

import pytest

from maint_reminders.services.business_calendar import BusinessCalendar, covers_every_day, next_business_day


HOLIDAYS = {(5, 25), (12, 25), (1, 1)}


class TestNextBusinessDay:
    """Tests for BusinessCalendar.next_business_day"""

    def setup_method(self):
        self.calendar = BusinessCalendar(HOLIDAYS)

    def test_weekday_unchanged(self):
        monday = date(2026, 10, 19)
        assert self.calendar.next_business_day(monday) == monday

    def test_saturday_rolls_to_monday(self):
        assert self.calendar.next_business_day(date(2026, 10, 17)) == date(2026, 10, 19)

    def test_sunday_rolls_to_monday(self):
        assert self.calendar.next_business_day(date(2026, 10, 18)) == date(2026, 10, 19)

    def test_saturday_before_holiday_monday_rolls_to_tuesday(self):
        """2026-05-23 is a Saturday and 2026-05-25 a holiday Monday."""
        assert self.calendar.next_business_day(date(2026, 5, 23)) == date(2026, 5, 26)

    def test_holiday_friday_rolls_past_weekend(self):
        """2026-12-25 is a Friday."""
        assert self.calendar.next_business_day(date(2026, 12, 25)) == date(2026, 12, 28)

    def test_holidays_are_year_independent(self):
        """2025-12-25 is a Thursday."""
        assert self.calendar.next_business_day(date(2025, 12, 25)) == date(2025, 12, 26)

    def test_datetime_is_normalized_to_date(self):
        result = self.calendar.next_business_day(datetime(2026, 10, 17, 23, 45))
        assert result == date(2026, 10, 19)
        assert not isinstance(result, datetime)

    def test_no_holidays_only_skips_weekends(self):
        assert next_business_day(date(2026, 5, 23)) == date(2026, 5, 25)

    def test_module_helper_matches_calendar(self):
        assert next_business_day(date(2026, 5, 23), HOLIDAYS) == date(2026, 5, 26)


class TestBusinessDayProperties:
    """Properties over a full year of dates."""

    def setup_method(self):
        self.calendar = BusinessCalendar(HOLIDAYS)
        start = date(2026, 1, 1)
        self.days = [start + timedelta(days=n) for n in range(400)]

    def test_result_is_never_weekend_or_holiday(self):
        for day in self.days:
            result = self.calendar.next_business_day(day)
            assert result.weekday() < 5
            assert (result.month, result.day) not in HOLIDAYS

    def test_idempotent(self):
        for day in self.days:
            once = self.calendar.next_business_day(day)
            assert self.calendar.next_business_day(once) == once

    def test_never_moves_backwards(self):
        for day in self.days:
            result = self.calendar.next_business_day(day)
            assert day <= result <= day + timedelta(days=7)

    def test_is_business_day(self):
        assert self.calendar.is_business_day(date(2026, 10, 19))
        assert not self.calendar.is_business_day(date(2026, 10, 18))
        assert not self.calendar.is_business_day(date(2026, 5, 25))


class TestDegenerateHolidaySets:

    @staticmethod
    def every_day(year=2021):
        day = date(year, 1, 1)
        days = set()
        while day.year == year:
            days.add((day.month, day.day))
            day += timedelta(days=1)
        return days

    def test_full_year_is_rejected(self):
        assert covers_every_day(self.every_day())
        with pytest.raises(ValueError):
            BusinessCalendar(self.every_day())

    def test_full_year_with_leap_day_is_rejected(self):
        with pytest.raises(ValueError):
            BusinessCalendar(self.every_day(2024))

    def test_one_open_day_is_enough(self):
        holidays = self.every_day() - {(3, 10)}
        assert not covers_every_day(holidays)

        calendar = BusinessCalendar(holidays)
        # 2026-03-10 is a Tuesday
        assert calendar.next_business_day(date(2026, 1, 1)) == date(2026, 3, 10)
