"""Business-day arithmetic against a fixed, year-independent holiday set."""

from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, Tuple

from maint_reminders.services.interval_classifier import as_calendar_date

MonthDay = Tuple[int, int]

SATURDAY = 5

# Any common year works; a set open only on Feb 29 still counts as full
_COMMON_YEAR = 2021


def covers_every_day(holidays: Iterable[MonthDay]) -> bool:
    """True if no day of a common year is left outside ``holidays``."""
    holidays = set(holidays)
    day = date(_COMMON_YEAR, 1, 1)
    while day.year == _COMMON_YEAR:
        if (day.month, day.day) not in holidays:
            return False
        day += timedelta(days=1)
    return True


class BusinessCalendar:
    """Weekends plus fixed (month, day) holidays are non-business days."""

    def __init__(self, holidays: Iterable[MonthDay] = ()):
        self.holidays: FrozenSet[MonthDay] = frozenset(holidays)
        if covers_every_day(self.holidays):
            raise ValueError("Holiday set leaves no business day")

    def is_business_day(self, day: date | datetime) -> bool:
        day = as_calendar_date(day)
        if day.weekday() >= SATURDAY:
            return False
        return (day.month, day.day) not in self.holidays

    def next_business_day(self, day: date | datetime) -> date:
        """Return ``day`` itself if it is a business day, else the next one."""
        day = as_calendar_date(day)
        while not self.is_business_day(day):
            day += timedelta(days=1)
        return day


def next_business_day(day: date | datetime, holidays: Iterable[MonthDay] = ()) -> date:
    return BusinessCalendar(holidays).next_business_day(day)
