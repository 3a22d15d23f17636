"""Tests for the circulation value models."""

from datetime import date

from library_circulation.models import (
    CirculationStatus,
    LoanPolicy,
    LoanRule,
    LoanSession,
    MemberContext,
    MemberStatus,
    OverdueResult,
    Receipt,
    ReceiptFineLine,
    StagedLoan,
)


def make_member(**overrides) -> MemberContext:
    values = {
        "member_id": "M-0001",
        "member_type_id": 1,
        "expire_date": date(2024, 6, 30),
        "baseline": LoanPolicy(loan_limit=3, loan_period_days=7),
    }
    values.update(overrides)
    return MemberContext(**values)


def staged(item_code: str, rule_id: int) -> StagedLoan:
    return StagedLoan(
        item_code=item_code,
        loan_rule_id=rule_id,
        loan_date=date(2024, 1, 3),
        due_date=date(2024, 1, 10),
    )


class TestMemberContext:
    def test_clamp_to_expiry(self):
        member = make_member()

        assert member.clamp_to_expiry(date(2024, 7, 15)) == date(2024, 6, 30)
        assert member.clamp_to_expiry(date(2024, 6, 30)) == date(2024, 6, 30)
        assert member.clamp_to_expiry(date(2024, 6, 1)) == date(2024, 6, 1)

    def test_no_expiry_means_no_clamp(self):
        member = make_member(expire_date=None)

        assert member.clamp_to_expiry(date(2099, 1, 1)) == date(2099, 1, 1)

    def test_status_flags(self):
        assert make_member(status=MemberStatus.EXPIRED).is_expired
        assert make_member(status=MemberStatus.PENDING).is_pending
        assert not make_member().is_expired


class TestLoanRule:
    def test_to_policy_keeps_rule_id(self):
        rule = LoanRule(rule_id=5, member_type_id=1, coll_type_id=2, loan_limit=4, fine_per_day=10)

        policy = rule.to_policy()

        assert type(policy) is LoanPolicy
        assert policy.rule_id == 5
        assert policy.loan_limit == 4
        assert not policy.is_baseline


class TestLoanSession:
    def test_staged_under_rule(self):
        session = LoanSession(member=make_member())
        session.staged["A"] = staged("A", 1)
        session.staged["B"] = staged("B", 2)
        session.staged["C"] = staged("C", 1)

        assert session.staged_under_rule(1) == 2
        assert session.staged_under_rule(2) == 1
        assert session.staged_under_rule(0) == 3

    def test_clear(self):
        session = LoanSession(member=make_member())
        session.staged["A"] = staged("A", 0)
        session.reborrowed.append(7)

        session.clear()

        assert session.is_empty
        assert session.reborrowed == []


class TestResults:
    def test_overdue_label(self):
        assert OverdueResult(item_code="A", days=3, value=30).label == "3 day(s)"

    def test_receipt_activity_ignores_fines_alone(self):
        receipt = Receipt()
        assert not receipt.has_activity

        receipt.fines.append(ReceiptFineLine(item_code="A", days=1, value=1))
        assert not receipt.has_activity

    def test_status_values_are_stable(self):
        assert CirculationStatus.ITEM_SESSION_ADDED.value == "item_session_added"
        assert CirculationStatus("trans_flush_error") is CirculationStatus.TRANS_FLUSH_ERROR
