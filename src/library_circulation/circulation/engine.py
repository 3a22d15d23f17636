"""
Circulation engine.

The engine ties staging, rules and persistence together:

1. **commit**: persist every staged loan, each in its own transaction
2. **return_item**: settle fines, close the loan, flag waiting reservations
3. **extend_loan**: return and re-lend in one step with a fresh due date

Business outcomes come back as result models carrying a
``CirculationStatus``. Only storage faults (``StoreError``) escape. History
mirroring is best effort: a failure is logged and listed in the result's
``warnings`` but the loan change stands.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime

from sqlalchemy.orm import Session

from ..config import CirculationConfig
from ..database.catalog_repository import CatalogRepository
from ..database.history import LoanHistoryWriter, SqlLoanHistory
from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..database.repository import LoanConflictError, StoreError
from ..models.loan import Fine, Item, Loan
from ..models.results import (
    BatchResult,
    CirculationStatus,
    ExtendResult,
    ItemFlushResult,
    OverdueResult,
    Receipt,
    ReceiptExtendLine,
    ReceiptFineLine,
    ReceiptLoanLine,
    ReceiptReturnLine,
    ReturnResult,
    StagingResult,
)
from ..models.session import LoanSession
from ..rules.calendar import HolidayCalendar
from ..rules.fines import OverdueFineCalculator
from ..rules.reservations import ReservationPriorityGuard
from .staging import LoanStaging

logger = logging.getLogger(__name__)


class CirculationEngine:
    """
    Checkout, return and renewal for one database session.

    The engine is stateless between calls: everything that belongs to a
    member's circulation transaction lives in the ``LoanSession`` passed in.
    """

    def __init__(
        self,
        db_session: Session,
        *,
        members: MemberRepository,
        catalog: CatalogRepository,
        loans: LoanRepository,
        history: LoanHistoryWriter,
        calendar: HolidayCalendar,
        ignore_holidays: bool = False,
        allow_ignore_rules: bool = True,
    ):
        self.db_session = db_session
        self.members = members
        self.catalog = catalog
        self.loans = loans
        self.history = history
        self.calendar = calendar
        self.guard = ReservationPriorityGuard(loans)
        self.fines = OverdueFineCalculator(calendar, ignore_holidays=ignore_holidays)
        self.staging = LoanStaging(
            members,
            catalog,
            loans,
            calendar,
            self.guard,
            allow_ignore_rules=allow_ignore_rules,
        )

    # === Sessions and staging ===

    def open_session(self, member_id: str, today: date | None = None) -> LoanSession | None:
        """Start a loan session for a member, or None if the member is unknown."""
        member = self.members.get_member_context(member_id, today)
        if member is None:
            return None
        return LoanSession(member=member)

    def add_item(
        self,
        session: LoanSession,
        item_code: str,
        *,
        ignore_rules: bool = False,
        today: date | None = None,
    ) -> StagingResult:
        return self.staging.add_item(session, item_code, ignore_rules=ignore_rules, today=today)

    def remove_item(self, session: LoanSession, item_code: str) -> None:
        self.staging.remove_item(session, item_code)

    # === Commit ===

    def commit(self, session: LoanSession) -> BatchResult:
        """
        Persist every staged loan in the session.

        Items are committed one by one; a failed item is recorded and the
        rest still go through. The cart is cleared afterwards either way.
        """
        result = BatchResult()

        for item_code, staged in list(session.staged.items()):
            try:
                loan = self.loans.open_loan(session.member_id, staged)
            except LoanConflictError as e:
                self.db_session.rollback()
                logger.warning("Commit lost race for item %s: %s", item_code, e)
                result.items.append(
                    ItemFlushResult(
                        item_code=item_code,
                        status=CirculationStatus.ITEM_UNAVAILABLE,
                        error=str(e),
                    )
                )
                continue
            except StoreError as e:
                self.db_session.rollback()
                logger.exception("Failed to persist loan for item %s", item_code)
                result.items.append(
                    ItemFlushResult(
                        item_code=item_code,
                        status=CirculationStatus.TRANS_FLUSH_ERROR,
                        error=str(e),
                    )
                )
                continue

            result.items.append(
                ItemFlushResult(
                    item_code=item_code,
                    status=CirculationStatus.TRANS_FLUSH_SUCCESS,
                    loan_id=loan.loan_id,
                )
            )
            self._mirror(self.history.record_loan, loan, result.warnings)
            session.receipt.loans.append(
                ReceiptLoanLine(
                    loan_id=loan.loan_id,
                    item_code=item_code,
                    title=staged.title,
                    classification=staged.classification,
                    loan_date=loan.loan_date,
                    due_date=loan.due_date,
                )
            )

        if result.failed:
            result.status = CirculationStatus.TRANS_FLUSH_ERROR

        self._close_receipt(session)
        session.clear()

        logger.info(
            "Session of member %s committed: %d loan(s), %d failure(s)",
            session.member_id,
            len(result.succeeded),
            len(result.failed),
        )
        return result

    # === Return ===

    def return_item(
        self, session: LoanSession, loan_id: int, today: date | None = None
    ) -> ReturnResult:
        """
        Return a loan, writing an overdue fine when one is due.

        Answers ``ITEM_RESERVED`` when another member has reserved the item;
        the return itself has still happened.
        """
        today = today or date.today()

        loan = self._member_loan(session, loan_id)
        if loan is None:
            return ReturnResult(status=CirculationStatus.ITEM_NOT_FOUND, loan_id=loan_id)

        overdue, fine = self._assess_overdue(session, loan, today)
        returned, fine = self.loans.mark_returned(loan.loan_id, today, fine)
        warnings: list[str] = []
        self._mirror(self.history.update_loan, returned, warnings)
        self._receipt_return(session, loan, today, overdue)
        logger.info("Loan %s returned by member %s", loan.loan_id, session.member_id)

        result = ReturnResult(
            status=CirculationStatus.OK,
            loan_id=loan.loan_id,
            item_code=loan.item_code,
            return_date=today,
            overdue=overdue,
            fine=fine,
            warnings=warnings,
        )

        reserved_by = self.guard.reserved_by_other(loan.item_code, session.member_id)
        if reserved_by is not None:
            result.status = CirculationStatus.ITEM_RESERVED
            result.reserved_by = reserved_by

        return result

    # === Extend ===

    def extend_loan(
        self, session: LoanSession, loan_id: int, today: date | None = None
    ) -> ExtendResult:
        """
        Renew a loan from today.

        Blocked with ``ITEM_RESERVED`` when any other member has reserved the
        item; nothing changes in that case. Otherwise any overdue fine is
        settled and the loan gets a new due date, both in one transaction.
        """
        today = today or date.today()

        loan = self._member_loan(session, loan_id)
        if loan is None:
            return ExtendResult(status=CirculationStatus.ITEM_NOT_FOUND, loan_id=loan_id)

        reserved_by = self.guard.reserved_by_other(loan.item_code, session.member_id)
        if reserved_by is not None:
            return ExtendResult(
                status=CirculationStatus.ITEM_RESERVED,
                loan_id=loan_id,
                item_code=loan.item_code,
                reserved_by=reserved_by,
            )

        overdue, fine = self._assess_overdue(session, loan, today)

        rule = self.members.get_loan_rule(loan.loan_rule_id)
        policy = rule if rule is not None else session.member.baseline
        period = policy.loan_period_days
        due_date = session.member.clamp_to_expiry(self.calendar.due_date(period, today))

        renewed, fine = self.loans.renew_loan(loan.loan_id, session.member_id, due_date, fine)
        warnings: list[str] = []
        self._mirror(self.history.update_loan, renewed, warnings)

        session.reborrowed.append(loan.loan_id)
        item = self._receipt_return(session, loan, today, overdue)
        session.receipt.extensions.append(
            ReceiptExtendLine(
                loan_id=loan.loan_id,
                item_code=loan.item_code,
                title=item.title if item else "",
                classification=item.classification if item else None,
                loan_date=today,
                due_date=due_date,
            )
        )

        logger.info(
            "Loan %s extended for member %s: due %s, renewed %d time(s)",
            loan.loan_id,
            session.member_id,
            due_date,
            renewed.renewed,
        )
        return ExtendResult(
            status=CirculationStatus.OK,
            loan_id=loan.loan_id,
            item_code=loan.item_code,
            due_date=due_date,
            renewed=renewed.renewed,
            overdue=overdue,
            fine=fine,
            warnings=warnings,
        )

    # === Helpers ===

    def _member_loan(self, session: LoanSession, loan_id: int) -> Loan | None:
        loan = self.loans.get_loan(loan_id)
        if loan is None or not loan.is_out or loan.member_id != session.member_id:
            return None
        return loan

    def _assess_overdue(
        self, session: LoanSession, loan: Loan, today: date
    ) -> tuple[OverdueResult | None, Fine | None]:
        """Overdue result for returning ``loan`` today and the fine to write, if any."""
        rule = self.members.get_loan_rule(loan.loan_rule_id)
        overdue = self.fines.count_overdue_value(loan, today, session.member.baseline, rule)

        session.loan_have_overdue = overdue is not None
        session.overdue_days = overdue.days if overdue is not None else None

        if overdue is None or not overdue.is_chargeable:
            return overdue, None
        return overdue, Fine(
            member_id=loan.member_id,
            fines_date=today,
            debet=overdue.value,
            description=f"Overdue fines for item {loan.item_code}",
        )

    def _receipt_return(
        self, session: LoanSession, loan: Loan, today: date, overdue: OverdueResult | None
    ) -> Item | None:
        item = self.catalog.get_item(loan.item_code)
        session.receipt.returns.append(
            ReceiptReturnLine(
                loan_id=loan.loan_id,
                item_code=loan.item_code,
                title=item.title if item else "",
                classification=item.classification if item else None,
                return_date=today,
                overdue=overdue,
            )
        )
        if overdue is not None:
            session.receipt.fines.append(
                ReceiptFineLine(item_code=loan.item_code, days=overdue.days, value=overdue.value)
            )
        return item

    def _mirror(self, write: Callable[[Loan], None], loan: Loan, warnings: list[str]) -> None:
        try:
            write(loan)
        except Exception as e:  # noqa: BLE001
            self.db_session.rollback()
            logger.warning("History mirroring failed for loan %s: %s", loan.loan_id, e)
            warnings.append(f"History not updated for loan {loan.loan_id}: {e}")

    def _close_receipt(self, session: LoanSession) -> None:
        if not session.receipt.has_activity:
            session.receipt = Receipt()
            return
        member = session.member
        session.receipt.member_id = member.member_id
        session.receipt.member_name = member.member_name
        session.receipt.member_type = member.member_type_name
        session.receipt.issued_at = datetime.now()


def build_engine(db_session: Session, config: CirculationConfig) -> CirculationEngine:
    """Wire repositories, calendar and history writer around a database session."""
    catalog = CatalogRepository(db_session)
    return CirculationEngine(
        db_session,
        members=MemberRepository(db_session),
        catalog=catalog,
        loans=LoanRepository(db_session),
        history=SqlLoanHistory(db_session),
        calendar=catalog.load_calendar(config),
        ignore_holidays=config.ignore_holidays_fine_calc,
        allow_ignore_rules=config.allow_ignore_rules,
    )
