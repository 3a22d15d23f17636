"""
Loan session staging.

Staging fills a member's loan session with items they intend to borrow.
Each ``add_item`` runs the eligibility checks in a fixed order and stops at
the first failure:

1. member expired
2. member pending
3. item unknown
4. item already out
5. item status forbids lending
6. another member has reservation priority (skipped when ignoring rules)
7. loan limit for the resolved rule (skipped when ignoring rules)

Nothing is written to the database here; the engine persists staged loans
on commit.
"""

import logging
from datetime import date

from ..database.catalog_repository import CatalogRepository
from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..models.loan import StagedLoan
from ..models.results import CirculationStatus, StagingResult
from ..models.session import LoanSession
from ..rules.calendar import HolidayCalendar
from ..rules.reservations import ReservationPriorityGuard
from ..rules.resolver import LoanRuleResolver

logger = logging.getLogger(__name__)


class LoanStaging:
    """Adds items to and removes items from a loan session."""

    def __init__(
        self,
        members: MemberRepository,
        catalog: CatalogRepository,
        loans: LoanRepository,
        calendar: HolidayCalendar,
        guard: ReservationPriorityGuard,
        allow_ignore_rules: bool = True,
    ):
        self.members = members
        self.catalog = catalog
        self.loans = loans
        self.calendar = calendar
        self.guard = guard
        self.allow_ignore_rules = allow_ignore_rules

    def resolver_for(self, session: LoanSession) -> LoanRuleResolver:
        member = session.member
        rules = self.members.list_loan_rules(member.member_type_id)
        return LoanRuleResolver(rules, member.baseline)

    def add_item(
        self,
        session: LoanSession,
        item_code: str,
        *,
        ignore_rules: bool = False,
        today: date | None = None,
    ) -> StagingResult:
        """
        Stage an item for the session's member.

        Args:
            session: The member's loan session
            item_code: Code of the item to borrow
            ignore_rules: Skip the reservation and loan-limit checks
            today: Loan date (defaults to today)

        Returns:
            ``ITEM_SESSION_ADDED`` with the staged loan, or the first failed check
        """
        today = today or date.today()
        member = session.member

        if ignore_rules and not self.allow_ignore_rules:
            logger.warning("ignore_rules requested for member %s but not allowed", member.member_id)
            ignore_rules = False

        if member.is_expired:
            return StagingResult(status=CirculationStatus.LOAN_NOT_PERMITTED, item_code=item_code)
        if member.is_pending:
            return StagingResult(
                status=CirculationStatus.LOAN_NOT_PERMITTED_PENDING, item_code=item_code
            )

        item = self.catalog.get_item(item_code)
        if item is None:
            return StagingResult(status=CirculationStatus.ITEM_NOT_FOUND, item_code=item_code)

        if self.loans.find_open_loan(item_code) is not None:
            return StagingResult(status=CirculationStatus.ITEM_UNAVAILABLE, item_code=item_code)

        if item.no_loan:
            return StagingResult(status=CirculationStatus.ITEM_LOAN_FORBID, item_code=item_code)

        if not ignore_rules and not self.guard.may_take(item_code, member.member_id):
            return StagingResult(
                status=CirculationStatus.ITEM_RESERVED,
                item_code=item_code,
                reserved_by=self.guard.first_claimant(item_code),
            )

        if item_code in session.staged:
            return StagingResult(
                status=CirculationStatus.ITEM_SESSION_ADDED,
                item_code=item_code,
                staged=session.staged[item_code],
            )

        policy = self.resolver_for(session).resolve(item.coll_type_id, item.gmd_id)

        due_date = member.clamp_to_expiry(self.calendar.due_date(policy.loan_period_days, today))
        logger.debug(
            "Due date for item %s: %s (rule %s, %d day(s))",
            item_code,
            due_date,
            policy.rule_id,
            policy.loan_period_days,
        )

        current = self.loans.count_open_loans(member.member_id, policy.rule_id)
        staged_count = session.staged_under_rule(policy.rule_id)
        if not ignore_rules and policy.loan_limit <= current + staged_count:
            return StagingResult(
                status=CirculationStatus.LOAN_LIMIT_REACHED,
                item_code=item_code,
                loan_limit=policy.loan_limit,
                current_count=current + staged_count,
            )

        staged = StagedLoan(
            item_code=item_code,
            loan_rule_id=policy.rule_id,
            title=item.title,
            classification=item.classification,
            loan_date=today,
            due_date=due_date,
        )
        session.staged[item_code] = staged
        logger.info("Item %s staged for member %s, due %s", item_code, member.member_id, due_date)

        return StagingResult(
            status=CirculationStatus.ITEM_SESSION_ADDED,
            item_code=item_code,
            staged=staged,
            loan_limit=policy.loan_limit,
            current_count=current + staged_count + 1,
        )

    def remove_item(self, session: LoanSession, item_code: str) -> None:
        """Drop a staged item; absent items are ignored."""
        if session.staged.pop(item_code, None) is not None:
            logger.debug("Item %s removed from session of member %s", item_code, session.member_id)
