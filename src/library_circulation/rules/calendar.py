"""
Library holiday calendar.

Holidays are a weekly weekday set (0=Monday, 6=Sunday) plus a list of
explicit dates. Due dates never land on a holiday, and overdue counting may
leave holidays out.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta


@dataclass(frozen=True)
class HolidayCalendar:
    """Pure date arithmetic over the configured holidays."""

    holiday_weekdays: frozenset[int] = field(default_factory=frozenset)
    holiday_dates: frozenset[date] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if len(self.holiday_weekdays) >= 7:
            raise ValueError("At least one weekday must be open")

    def is_holiday(self, d: date) -> bool:
        return d.weekday() in self.holiday_weekdays or d in self.holiday_dates

    @staticmethod
    def next_date(days: int, from_date: date) -> date:
        """Plain calendar-day addition."""
        return from_date + timedelta(days=days)

    def next_non_holiday_date(self, d: date) -> date:
        """Return ``d`` if it is open, otherwise the first open day after it."""
        while self.is_holiday(d):
            d += timedelta(days=1)
        return d

    def count_holidays_between(self, start: date, end: date) -> int:
        """
        Count holidays in ``(start, end]``.

        The start is excluded and the end included, the same convention as
        ``(end - start).days`` for overdue days.
        """
        count = 0
        current = start + timedelta(days=1)
        while current <= end:
            if self.is_holiday(current):
                count += 1
            current += timedelta(days=1)
        return count

    def due_date(self, loan_period_days: int, from_date: date) -> date:
        """Loan period added to ``from_date`` and pushed past any holidays."""
        return self.next_non_holiday_date(self.next_date(loan_period_days, from_date))
