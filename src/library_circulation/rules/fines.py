"""
Overdue fine calculation.

Overdue days are calendar days from the due date to the return date. With
holiday exclusion enabled, holidays in ``(due_date, return_date]`` are left
out. A return inside a grace period costs nothing and is reported as "on
grace" instead of a day count.

Grace comes from two places: the member type's baseline and the loan rule.
Either one covering the return date is enough. Once a loan carries a rule,
the rule's daily rate applies; otherwise the baseline rate does.
"""

import logging
from datetime import date

from ..models.loan import Loan
from ..models.member import LoanPolicy
from ..models.results import OverdueResult
from .calendar import HolidayCalendar

logger = logging.getLogger(__name__)


class OverdueFineCalculator:
    """Computes overdue days and fine amounts for returned loans."""

    def __init__(self, calendar: HolidayCalendar, ignore_holidays: bool = False):
        self.calendar = calendar
        self.ignore_holidays = ignore_holidays

    def _within_grace(self, due_date: date, grace_days: int, return_date: date) -> bool:
        if not grace_days:
            return False
        return self.calendar.next_date(grace_days, due_date) >= return_date

    def count_overdue_value(
        self,
        loan: Loan,
        return_date: date,
        baseline: LoanPolicy,
        rule: LoanPolicy | None = None,
    ) -> OverdueResult | None:
        """
        Work out the overdue result for returning ``loan`` on ``return_date``.

        Args:
            loan: The loan being returned
            return_date: Date the item comes back
            baseline: Member type baseline policy (global grace and rate)
            rule: The loan's resolved rule, if it had one

        Returns:
            None when nothing is overdue, otherwise the overdue result
        """
        if return_date <= loan.due_date:
            return None

        overdue_days = (return_date - loan.due_date).days

        if self.ignore_holidays:
            overdue_days -= self.calendar.count_holidays_between(loan.due_date, return_date)
            if overdue_days < 0:
                return None

        if overdue_days < 1:
            return None

        on_grace = self._within_grace(loan.due_date, baseline.grace_period_days, return_date)
        fine_per_day = baseline.fine_per_day
        if rule is not None and not rule.is_baseline:
            fine_per_day = rule.fine_per_day
            if self._within_grace(loan.due_date, rule.grace_period_days, return_date):
                on_grace = True

        if on_grace:
            logger.debug("Loan %s returned within grace period", loan.loan_id)
            return OverdueResult(item_code=loan.item_code, days=None, value=0.0, on_grace=True)

        value = fine_per_day * overdue_days
        logger.debug(
            "Loan %s overdue %d day(s) at %.2f per day: %.2f",
            loan.loan_id,
            overdue_days,
            fine_per_day,
            value,
        )
        return OverdueResult(item_code=loan.item_code, days=overdue_days, value=value)
