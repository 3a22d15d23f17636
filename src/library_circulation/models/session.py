"""
Loan session model.

A loan session is the per-member, per-transaction cart of staged loans. It
is owned by one caller, passed into every staging and engine call, and
never persisted.
"""

from pydantic import BaseModel, Field

from .loan import StagedLoan
from .member import MemberContext
from .results import Receipt


class LoanSession(BaseModel):
    """Circulation transaction state for one member."""

    member: MemberContext

    staged: dict[str, StagedLoan] = Field(
        default_factory=dict,
        description="Staged loans keyed by item code",
    )

    reborrowed: list[int] = Field(
        default_factory=list,
        description="Loan ids renewed during this session",
    )

    receipt: Receipt = Field(default_factory=Receipt)

    loan_have_overdue: bool = False
    overdue_days: int | None = None

    @property
    def member_id(self) -> str:
        return self.member.member_id

    @property
    def is_empty(self) -> bool:
        return not self.staged

    def staged_under_rule(self, rule_id: int) -> int:
        """Count staged loans under ``rule_id``; all staged loans for the baseline."""
        if not rule_id:
            return len(self.staged)
        return sum(1 for loan in self.staged.values() if loan.loan_rule_id == rule_id)

    def clear(self) -> None:
        """Drop staged loans and the renewal list."""
        self.staged.clear()
        self.reborrowed.clear()
