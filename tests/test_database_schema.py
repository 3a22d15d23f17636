"""
Tests for database schema and session management.

These tests verify:
1. Database tables are created correctly
2. Relationships work as expected
3. Constraints are enforced, including the single open loan per item
4. Session management works properly
"""

from datetime import date

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from library_circulation.database import (
    Biblio,
    ItemRecord,
    LoanRecord,
    Member,
    MemberStatusEnum,
    MemberType,
    StoreError,
    get_db_manager,
    reset_db_manager,
    safe_commit,
    session_scope,
)


@pytest.fixture
def db_manager():
    """Create a test database manager with in-memory SQLite."""
    reset_db_manager()
    manager = get_db_manager("sqlite:///:memory:")
    manager.init_database()
    yield manager
    reset_db_manager()


@pytest.fixture
def session(db_manager):
    """Provide a database session for tests."""
    with db_manager.session_scope() as session:
        yield session


def seed_item(session, item_code: str = "B00001") -> None:
    session.add_all(
        [
            MemberType(member_type_id=1, member_type_name="Student", loan_limit=3),
            Member(member_id="M-0001", member_name="Ada", member_type_id=1),
            Member(member_id="M-0002", member_name="Alan", member_type_id=1),
            Biblio(biblio_id=1, title="Schema Book"),
        ]
    )
    session.flush()
    session.add(ItemRecord(item_code=item_code, biblio_id=1))
    session.flush()


def make_loan(item_code: str, member_id: str, **overrides) -> LoanRecord:
    values = {
        "item_code": item_code,
        "member_id": member_id,
        "loan_date": date(2024, 1, 3),
        "due_date": date(2024, 1, 10),
    }
    values.update(overrides)
    return LoanRecord(**values)


class TestDatabaseSchema:
    """Test database schema creation and basic operations."""

    def test_tables_created(self, session):
        """Verify all expected tables are created."""
        tables = inspect(session.bind).get_table_names()

        expected_tables = {
            "member_types",
            "members",
            "collection_types",
            "gmds",
            "item_statuses",
            "biblios",
            "items",
            "loan_rules",
            "loans",
            "reservations",
            "fines",
            "holidays",
            "loan_history",
        }

        assert set(tables) == expected_tables

    def test_open_loan_index_is_partial_and_unique(self, session):
        indexes = {index["name"]: index for index in inspect(session.bind).get_indexes("loans")}

        assert indexes["uq_loan_item_out"]["unique"]
        assert indexes["uq_loan_item_out"]["column_names"] == ["item_code"]

    def test_loan_defaults(self, session):
        seed_item(session)
        loan = make_loan("B00001", "M-0001")
        session.add(loan)
        session.commit()

        assert loan.loan_id is not None
        assert loan.loan_rule_id == 0
        assert loan.renewed == 0
        assert loan.is_lent == 1
        assert loan.is_return == 0
        assert loan.return_date is None
        assert loan.member.member_name == "Ada"

    def test_member_relationships(self, session):
        seed_item(session)
        session.commit()

        member = session.get(Member, "M-0001")

        assert member.status == MemberStatusEnum.ACTIVE
        assert member.member_type.member_type_name == "Student"
        assert session.get(ItemRecord, "B00001").biblio.title == "Schema Book"


class TestOpenLoanConstraint:
    """An item can have many loans over time but only one out at once."""

    def test_second_open_loan_rejected(self, db_manager):
        with db_manager.session_scope() as session:
            seed_item(session)
            session.add(make_loan("B00001", "M-0001"))

        with pytest.raises(IntegrityError), db_manager.session_scope() as session:  # noqa: PT012
            session.add(make_loan("B00001", "M-0002"))
            session.flush()

    def test_returned_loans_do_not_conflict(self, db_manager):
        with db_manager.session_scope() as session:
            seed_item(session)
            session.add(make_loan("B00001", "M-0001", is_return=1, return_date=date(2024, 1, 5)))
            session.add(make_loan("B00001", "M-0002", is_return=1, return_date=date(2024, 1, 9)))
            session.add(make_loan("B00001", "M-0001"))

        with db_manager.session_scope() as session:
            assert session.query(LoanRecord).count() == 3

    def test_flag_check_constraints(self, db_manager):
        with db_manager.session_scope() as session:
            seed_item(session)

        with pytest.raises(IntegrityError), db_manager.session_scope() as session:  # noqa: PT012
            session.add(make_loan("B00001", "M-0001", is_return=2))
            session.flush()

    def test_safe_commit_wraps_integrity_errors(self, db_manager):
        with db_manager.session_scope() as session:
            seed_item(session)
            session.add(make_loan("B00001", "M-0001"))

        session = db_manager.create_session()
        try:
            session.add(make_loan("B00001", "M-0002"))
            with pytest.raises(StoreError, match="open duplicate loan"):
                safe_commit(session, "open duplicate loan")
        finally:
            session.close()


class TestSessionManagement:
    """Test database session management utilities."""

    def test_session_scope_commit(self, db_manager):
        """Test that session_scope commits on success."""
        with session_scope() as session:
            session.add(MemberType(member_type_id=7, member_type_name="Visitor"))

        with session_scope() as session:
            assert session.get(MemberType, 7) is not None

    def test_session_scope_rollback(self, db_manager):
        """Test that session_scope rolls back on error."""
        with (  # noqa: PT012
            pytest.raises(ValueError, match="Test error"),
            session_scope() as session,
        ):
            session.add(MemberType(member_type_id=8, member_type_name="Rollback"))
            raise ValueError("Test error")

        with session_scope() as session:
            assert session.get(MemberType, 8) is None

    def test_verify_connection(self, db_manager):
        assert db_manager.verify_connection() is True
