"""
Member models for the circulation engine.

Membership records are owned by an external membership service. The engine
only reads them, so these models describe the read-only view a circulation
transaction needs:
- MemberStatus: derived membership state (active, pending, expired)
- LoanPolicy: loan limits, periods and fine rates (baseline or rule-specific)
- MemberContext: the member a circulation session is working for
- LoanRule: a policy keyed by member type, collection type and material designation
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MemberStatus(str, Enum):
    """Membership state as seen by circulation."""

    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"


class LoanPolicy(BaseModel):
    """
    Loan policy values applied to a loan.

    A policy is either a member type's baseline (``rule_id == 0``) or a row
    of the loan rule table resolved for a collection type and/or material
    designation.
    """

    rule_id: int = Field(
        default=0,
        description="Loan rule identifier, 0 when the member-type baseline applies",
        ge=0,
    )

    loan_limit: int = Field(
        default=0,
        description="Maximum number of concurrent loans under this policy",
        ge=0,
    )

    loan_period_days: int = Field(
        default=0,
        description="Loan period in calendar days",
        ge=0,
    )

    reborrow_limit: int = Field(
        default=0,
        description="Maximum number of renewals",
        ge=0,
    )

    fine_per_day: float = Field(
        default=0.0,
        description="Fine charged for each overdue day",
        ge=0.0,
    )

    grace_period_days: int = Field(
        default=0,
        description="Days after the due date during which no fine accrues",
        ge=0,
    )

    @property
    def is_baseline(self) -> bool:
        return self.rule_id == 0

    model_config = ConfigDict(frozen=True)


class MemberContext(BaseModel):
    """
    The member a circulation session acts for.

    Holds the membership state and the member type's baseline policy so the
    engine never has to reach back into the membership service mid-operation.
    """

    member_id: str = Field(..., description="Member identifier", min_length=1)
    member_name: str = Field(default="", description="Member display name")
    member_type_id: int = Field(..., description="Membership type identifier")
    member_type_name: str = Field(default="", description="Membership type name")

    status: MemberStatus = Field(
        default=MemberStatus.ACTIVE,
        description="Derived membership state",
    )

    expire_date: date | None = Field(
        None,
        description="Membership expiry date; due dates are clamped to it",
    )

    baseline: LoanPolicy = Field(
        default_factory=LoanPolicy,
        description="Member type baseline loan policy",
    )

    @property
    def is_expired(self) -> bool:
        return self.status == MemberStatus.EXPIRED

    @property
    def is_pending(self) -> bool:
        return self.status == MemberStatus.PENDING

    def clamp_to_expiry(self, due_date: date) -> date:
        """Return ``due_date`` or the expiry date if the due date falls after it."""
        if self.expire_date is not None and due_date > self.expire_date:
            return self.expire_date
        return due_date

    model_config = ConfigDict(frozen=True)


class LoanRule(LoanPolicy):
    """
    A loan rule row: a policy keyed by member type plus an optional
    collection type and an optional material designation.
    """

    member_type_id: int = Field(..., description="Member type the rule applies to")
    coll_type_id: int | None = Field(None, description="Collection type, None for any")
    gmd_id: int | None = Field(None, description="Material designation, None for any")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    def to_policy(self) -> LoanPolicy:
        return LoanPolicy(
            rule_id=self.rule_id,
            loan_limit=self.loan_limit,
            loan_period_days=self.loan_period_days,
            reborrow_limit=self.reborrow_limit,
            fine_per_day=self.fine_per_day,
            grace_period_days=self.grace_period_days,
        )
