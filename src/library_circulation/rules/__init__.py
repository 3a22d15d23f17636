"""
Circulation rules.

Pure policy components with no persistence of their own:
- HolidayCalendar: holiday checks and due-date arithmetic
- LoanRuleResolver: picks the loan policy for an item
- ReservationPriorityGuard: first-come reservation priority
- OverdueFineCalculator: overdue days, grace periods and fines
"""

from .calendar import HolidayCalendar
from .fines import OverdueFineCalculator
from .reservations import ReservationPriorityGuard, ReservationSource
from .resolver import LoanRuleResolver

__all__ = [
    "HolidayCalendar",
    "LoanRuleResolver",
    "OverdueFineCalculator",
    "ReservationPriorityGuard",
    "ReservationSource",
]
