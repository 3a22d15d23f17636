"""
Loan history mirroring.

The history ledger keeps one denormalised row per loan: the loan fields
plus a snapshot of the title, classification, material designation,
collection type and member names at the time of lending. It is written when
a loan is opened and updated on return and renewal.

History is an audit trail, not part of the loan transaction. The engine
calls it after the loan itself is committed and treats a failure as a
warning.
"""

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.loan import Loan
from .schema import Biblio as BiblioDB
from .schema import CollectionType as CollectionTypeDB
from .schema import Gmd as GmdDB
from .schema import ItemRecord as ItemDB
from .schema import LoanHistoryRecord as LoanHistoryDB
from .schema import Member as MemberDB
from .schema import MemberType as MemberTypeDB
from .session import safe_commit, safe_query

logger = logging.getLogger(__name__)


class LoanHistoryWriter(Protocol):
    """Anything that can mirror loans into an audit ledger."""

    def record_loan(self, loan: Loan) -> None: ...

    def update_loan(self, loan: Loan) -> None: ...


class SqlLoanHistory:
    """Writes the ``loan_history`` table through the given session."""

    def __init__(self, session: Session):
        self.session = session

    def _snapshot(self, loan: Loan) -> dict:
        row = safe_query(
            self.session,
            lambda s: s.execute(
                select(
                    BiblioDB.title,
                    BiblioDB.biblio_id,
                    BiblioDB.classification,
                    ItemDB.call_number,
                    GmdDB.gmd_name,
                    CollectionTypeDB.coll_type_name,
                )
                .select_from(ItemDB)
                .join(BiblioDB, ItemDB.biblio_id == BiblioDB.biblio_id)
                .outerjoin(GmdDB, BiblioDB.gmd_id == GmdDB.gmd_id)
                .outerjoin(CollectionTypeDB, ItemDB.coll_type_id == CollectionTypeDB.coll_type_id)
                .where(ItemDB.item_code == loan.item_code)
            ).first(),
            f"Failed to snapshot item {loan.item_code}",
        )
        member = safe_query(
            self.session,
            lambda s: s.execute(
                select(MemberDB.member_name, MemberTypeDB.member_type_name)
                .join(MemberTypeDB, MemberDB.member_type_id == MemberTypeDB.member_type_id)
                .where(MemberDB.member_id == loan.member_id)
            ).first(),
            f"Failed to snapshot member {loan.member_id}",
        )

        snapshot: dict = {}
        if row is not None:
            snapshot.update(
                title=row.title,
                biblio_id=row.biblio_id,
                classification=row.classification,
                call_number=row.call_number,
                gmd_name=row.gmd_name,
                collection_type_name=row.coll_type_name,
            )
        if member is not None:
            snapshot.update(
                member_name=member.member_name,
                member_type_name=member.member_type_name,
            )
        return snapshot

    @staticmethod
    def _apply_loan_fields(record: LoanHistoryDB, loan: Loan) -> None:
        record.due_date = loan.due_date
        record.renewed = loan.renewed
        record.is_lent = int(loan.is_lent)
        record.is_return = int(loan.is_return)
        record.return_date = loan.return_date

    def record_loan(self, loan: Loan) -> None:
        record = LoanHistoryDB(
            loan_id=loan.loan_id,
            item_code=loan.item_code,
            member_id=loan.member_id,
            loan_date=loan.loan_date,
            **self._snapshot(loan),
        )
        self._apply_loan_fields(record, loan)
        safe_query(
            self.session,
            lambda s: s.merge(record),
            f"Failed to write history for loan {loan.loan_id}",
        )
        safe_commit(self.session, f"record history for loan {loan.loan_id}")
        logger.debug("History recorded for loan %s", loan.loan_id)

    def update_loan(self, loan: Loan) -> None:
        record = safe_query(
            self.session,
            lambda s: s.get(LoanHistoryDB, loan.loan_id),
            f"Failed to get history for loan {loan.loan_id}",
        )
        if record is None:
            # Loans opened before history existed get their row on first update.
            self.record_loan(loan)
            return

        self._apply_loan_fields(record, loan)
        safe_commit(self.session, f"update history for loan {loan.loan_id}")
        logger.debug("History updated for loan %s", loan.loan_id)
