"""
Member repository for the Library Circulation server.

Membership data is owned elsewhere; circulation only reads it. This
repository turns a member row and its member type into a ``MemberContext``
and serves the loan rules defined for a member type.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import joinedload

from ..models.member import LoanPolicy, LoanRule, MemberContext, MemberStatus
from .repository import BaseRepository
from .schema import LoanRule as LoanRuleDB
from .schema import Member as MemberDB
from .schema import MemberStatusEnum
from .schema import MemberType as MemberTypeDB


def derive_member_status(
    stored: MemberStatusEnum, expire_date: date | None, today: date
) -> MemberStatus:
    """
    Work out the membership state circulation should act on.

    A pending flag wins; otherwise a member is expired when flagged so or
    when the expiry date has passed.
    """
    if stored == MemberStatusEnum.PENDING:
        return MemberStatus.PENDING
    if stored == MemberStatusEnum.EXPIRED:
        return MemberStatus.EXPIRED
    if expire_date is not None and expire_date < today:
        return MemberStatus.EXPIRED
    return MemberStatus.ACTIVE


def _baseline_policy(member_type: MemberTypeDB) -> LoanPolicy:
    return LoanPolicy(
        rule_id=0,
        loan_limit=member_type.loan_limit,
        loan_period_days=member_type.loan_period_days,
        reborrow_limit=member_type.reborrow_limit,
        fine_per_day=member_type.fine_per_day,
        grace_period_days=member_type.grace_period_days,
    )


class MemberRepository(BaseRepository):
    """Read-only access to members, member types and loan rules."""

    def get_member_context(self, member_id: str, today: date | None = None) -> MemberContext | None:
        """
        Load the member a circulation session acts for.

        Args:
            member_id: Member identifier
            today: Reference date for the expiry check (defaults to today)

        Returns:
            The member context, or None if no such member exists
        """
        today = today or date.today()

        member = self._query(
            lambda s: s.execute(
                select(MemberDB)
                .options(joinedload(MemberDB.member_type))
                .where(MemberDB.member_id == member_id)
            ).scalar_one_or_none(),
            f"Failed to get member {member_id}",
        )
        if member is None:
            return None

        member_type = member.member_type
        return MemberContext(
            member_id=member.member_id,
            member_name=member.member_name,
            member_type_id=member.member_type_id,
            member_type_name=member_type.member_type_name,
            status=derive_member_status(member.status, member.expire_date, today),
            expire_date=member.expire_date,
            baseline=_baseline_policy(member_type),
        )

    def list_loan_rules(self, member_type_id: int) -> list[LoanRule]:
        """Return every loan rule defined for a member type, lowest id first."""
        rows = self._query(
            lambda s: s.execute(
                select(LoanRuleDB)
                .where(LoanRuleDB.member_type_id == member_type_id)
                .order_by(LoanRuleDB.rule_id)
            )
            .scalars()
            .all(),
            f"Failed to list loan rules for member type {member_type_id}",
        )
        return [LoanRule.model_validate(row) for row in rows]

    def get_loan_rule(self, rule_id: int) -> LoanRule | None:
        if not rule_id:
            return None
        row = self._query(
            lambda s: s.get(LoanRuleDB, rule_id),
            f"Failed to get loan rule {rule_id}",
        )
        if row is None:
            return None
        return LoanRule.model_validate(row)
