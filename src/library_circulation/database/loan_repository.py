"""
Loan repository for the Library Circulation server.

This repository owns the circulation ledger:

1. **Loans**: opening loans from staged items, returns and renewals
2. **Reservations**: the per-item queue, consumed when the reserving member borrows
3. **Fines**: overdue charges written on return

Write methods commit before returning, one transaction per loan, so a
failure on one item never rolls back another. The "currently out" guard is
checked before insert and enforced again by the ``uq_loan_item_out`` index;
whichever trips first surfaces as ``LoanConflictError``.
"""

import logging
from datetime import date

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..models.loan import Fine, Loan, Reservation, StagedLoan
from .repository import (
    BaseRepository,
    LoanConflictError,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
    StoreError,
)
from .schema import FineRecord as FineDB
from .schema import LoanRecord as LoanDB
from .schema import ReservationRecord as ReservationDB

logger = logging.getLogger(__name__)


def _open_loans():
    return select(LoanDB).where(LoanDB.is_lent == 1, LoanDB.is_return == 0)


def _to_reservation(row: ReservationDB) -> Reservation:
    return Reservation(
        reserve_id=row.reserve_id,
        item_code=row.item_code,
        member_id=row.member_id,
        reserved_at=row.reserve_date,
    )


class LoanRepository(BaseRepository):
    """Repository for loans, reservations and fines."""

    # === Loans ===

    def get_loan(self, loan_id: int) -> Loan | None:
        row = self._query(
            lambda s: s.get(LoanDB, loan_id),
            f"Failed to get loan {loan_id}",
        )
        return Loan.model_validate(row) if row is not None else None

    def find_open_loan(self, item_code: str, for_update: bool = False) -> Loan | None:
        """Return the loan currently out for an item, if any."""
        query = _open_loans().where(LoanDB.item_code == item_code)
        if for_update:
            query = query.with_for_update()
        row = self._query(
            lambda s: s.execute(query).scalars().first(),
            f"Failed to check open loan for item {item_code}",
        )
        return Loan.model_validate(row) if row is not None else None

    def count_open_loans(self, member_id: str, rule_id: int = 0) -> int:
        """
        Count a member's current loans.

        Only loans under ``rule_id`` are counted when a rule applies; with the
        baseline (rule id 0) every current loan counts.
        """
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.member_id == member_id, LoanDB.is_lent == 1, LoanDB.is_return == 0)
        )
        if rule_id:
            query = query.where(LoanDB.loan_rule_id == rule_id)
        return self._query(
            lambda s: s.execute(query).scalar(),
            f"Failed to count loans for member {member_id}",
        ) or 0

    def list_current_loans(self, member_id: str, rule_id: int | None = None) -> list[Loan]:
        query = _open_loans().where(LoanDB.member_id == member_id)
        if rule_id is not None:
            query = query.where(LoanDB.loan_rule_id == rule_id)
        rows = self._query(
            lambda s: s.execute(query.order_by(LoanDB.due_date, LoanDB.loan_id)).scalars().all(),
            f"Failed to list current loans for member {member_id}",
        )
        return [Loan.model_validate(row) for row in rows]

    def list_member_loans(
        self, member_id: str, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[Loan]:
        """List all loans of a member, newest first."""
        query = (
            select(LoanDB)
            .where(LoanDB.member_id == member_id)
            .order_by(desc(LoanDB.loan_date), desc(LoanDB.loan_id))
        )
        return self._paginate(query, pagination, Loan, f"loans for member {member_id}")

    def open_loan(self, member_id: str, staged: StagedLoan) -> Loan:
        """
        Persist a staged loan and consume the member's reservation on the item.

        Raises:
            LoanConflictError: If the item already has a loan that is out
            StoreError: For any other database failure
        """
        if self.find_open_loan(staged.item_code, for_update=True) is not None:
            raise LoanConflictError(staged.item_code)

        loan = LoanDB(
            item_code=staged.item_code,
            member_id=member_id,
            loan_rule_id=staged.loan_rule_id,
            loan_date=staged.loan_date,
            due_date=staged.due_date,
            renewed=0,
            is_lent=1,
            is_return=0,
        )
        self.session.add(loan)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            if self.find_open_loan(staged.item_code) is not None:
                raise LoanConflictError(staged.item_code) from e
            raise StoreError(f"Failed to create loan for item {staged.item_code}: {e!s}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to create loan for item {staged.item_code}: {e!s}") from e

        self._query(
            lambda s: s.execute(
                delete(ReservationDB).where(
                    ReservationDB.member_id == member_id,
                    ReservationDB.item_code == staged.item_code,
                )
            ),
            f"Failed to consume reservation on item {staged.item_code}",
        )
        self._commit(f"open loan for item {staged.item_code}")

        logger.info(
            "Loan %s opened: item=%s member=%s due=%s",
            loan.loan_id,
            staged.item_code,
            member_id,
            staged.due_date,
        )
        return Loan.model_validate(loan)

    def _add_fine(self, fine: Fine | None) -> FineDB | None:
        if fine is None:
            return None
        row = FineDB(
            fines_date=fine.fines_date,
            member_id=fine.member_id,
            debet=fine.debet,
            credit=fine.credit,
            description=fine.description,
        )
        self.session.add(row)
        return row

    @staticmethod
    def _saved_fine(fine: Fine | None, row: FineDB | None) -> Fine | None:
        if fine is None or row is None:
            return None
        logger.info("Fine %s created for member %s: %.2f", row.fines_id, fine.member_id, fine.debet)
        return fine.model_copy(update={"fine_id": row.fines_id})

    def mark_returned(
        self, loan_id: int, return_date: date, fine: Fine | None = None
    ) -> tuple[Loan, Fine | None]:
        """
        Close a loan and write its overdue fine, in one transaction.

        Raises:
            NotFoundError: If the loan does not exist
        """
        loan = self._query(
            lambda s: s.get(LoanDB, loan_id),
            f"Failed to get loan {loan_id}",
        )
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")

        loan.is_return = 1
        loan.return_date = return_date
        fine_row = self._add_fine(fine)

        self._commit(f"return loan {loan_id}")
        return Loan.model_validate(loan), self._saved_fine(fine, fine_row)

    def renew_loan(
        self, loan_id: int, member_id: str, due_date: date, fine: Fine | None = None
    ) -> tuple[Loan, Fine | None]:
        """
        Keep a loan out with a new due date and one more renewal.

        The overdue fine settled by the renewal is written in the same
        transaction.

        Raises:
            NotFoundError: If the member has no such loan
        """
        loan = self._query(
            lambda s: s.execute(
                select(LoanDB).where(LoanDB.loan_id == loan_id, LoanDB.member_id == member_id)
            ).scalar_one_or_none(),
            f"Failed to get loan {loan_id}",
        )
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found for member {member_id}")

        loan.renewed = (loan.renewed or 0) + 1
        loan.due_date = due_date
        loan.is_lent = 1
        loan.is_return = 0
        loan.return_date = None
        fine_row = self._add_fine(fine)

        self._commit(f"renew loan {loan_id}")
        return Loan.model_validate(loan), self._saved_fine(fine, fine_row)

    # === Reservations ===

    def list_reservations(self, item_code: str) -> list[Reservation]:
        """Reservation queue for an item, earliest first."""
        rows = self._query(
            lambda s: s.execute(
                select(ReservationDB)
                .where(ReservationDB.item_code == item_code)
                .order_by(ReservationDB.reserve_date, ReservationDB.reserve_id)
            )
            .scalars()
            .all(),
            f"Failed to list reservations for item {item_code}",
        )
        return [_to_reservation(row) for row in rows]

    # === Fines ===

    def list_fines(self, member_id: str) -> list[Fine]:
        rows = self._query(
            lambda s: s.execute(
                select(FineDB).where(FineDB.member_id == member_id).order_by(FineDB.fines_id)
            )
            .scalars()
            .all(),
            f"Failed to list fines for member {member_id}",
        )
        return [
            Fine(
                fine_id=row.fines_id,
                member_id=row.member_id,
                fines_date=row.fines_date,
                debet=row.debet,
                credit=row.credit,
                description=row.description or "",
            )
            for row in rows
        ]
