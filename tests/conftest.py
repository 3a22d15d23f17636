"""Test configuration and fixtures for the Library Circulation server.

Every test gets its own SQLite file, a configuration pointing at it and a
``LibraryBuilder`` for seeding members, items, rules, loans and
reservations. Dates are fixed so due dates and fines are predictable.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date, datetime
from itertools import count
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from library_circulation.circulation.engine import CirculationEngine, build_engine
from library_circulation.config import CirculationConfig, reset_config
from library_circulation.database.schema import (
    Base,
    Biblio,
    CollectionType,
    Gmd,
    Holiday,
    ItemRecord,
    ItemStatus,
    LoanRecord,
    LoanRule,
    Member,
    MemberStatusEnum,
    MemberType,
    ReservationRecord,
)

# A Wednesday; Sundays are the configured weekly holiday in tests.
TODAY = date(2024, 1, 3)
FAR_FUTURE = date(2030, 12, 31)

COLL_CIRCULATING = 1
COLL_REFERENCE = 2
GMD_TEXT = 1
GMD_CD = 2


class LibraryBuilder:
    """Seeds circulation data into a test session, committing as it goes."""

    def __init__(self, session: Session):
        self.session = session
        self._biblio_ids = count(1)

        session.add_all(
            [
                CollectionType(coll_type_id=COLL_CIRCULATING, coll_type_name="Circulating"),
                CollectionType(coll_type_id=COLL_REFERENCE, coll_type_name="Reference"),
                Gmd(gmd_id=GMD_TEXT, gmd_name="Text"),
                Gmd(gmd_id=GMD_CD, gmd_name="Audio CD"),
                ItemStatus(item_status_id="0", item_status_name="Available", no_loan=0),
                ItemStatus(item_status_id="X", item_status_name="Missing", no_loan=1),
            ]
        )
        session.commit()

    def member_type(
        self,
        member_type_id: int = 1,
        name: str = "Student",
        loan_limit: int = 3,
        loan_period_days: int = 7,
        reborrow_limit: int = 1,
        fine_per_day: float = 500,
        grace_period_days: int = 0,
    ) -> MemberType:
        member_type = MemberType(
            member_type_id=member_type_id,
            member_type_name=name,
            loan_limit=loan_limit,
            loan_period_days=loan_period_days,
            reborrow_limit=reborrow_limit,
            fine_per_day=fine_per_day,
            grace_period_days=grace_period_days,
        )
        self.session.add(member_type)
        self.session.commit()
        return member_type

    def member(
        self,
        member_id: str = "M-0001",
        member_type_id: int = 1,
        status: MemberStatusEnum = MemberStatusEnum.ACTIVE,
        expire_date: date | None = FAR_FUTURE,
        name: str | None = None,
    ) -> Member:
        member = Member(
            member_id=member_id,
            member_name=name or f"Member {member_id}",
            member_type_id=member_type_id,
            status=status,
            expire_date=expire_date,
        )
        self.session.add(member)
        self.session.commit()
        return member

    def item(
        self,
        item_code: str,
        coll_type_id: int | None = COLL_CIRCULATING,
        gmd_id: int | None = GMD_TEXT,
        no_loan: bool = False,
        title: str | None = None,
    ) -> ItemRecord:
        biblio = Biblio(
            biblio_id=next(self._biblio_ids),
            title=title or f"Title of {item_code}",
            classification="005.1",
            gmd_id=gmd_id,
        )
        self.session.add(biblio)
        self.session.flush()
        item = ItemRecord(
            item_code=item_code,
            biblio_id=biblio.biblio_id,
            coll_type_id=coll_type_id,
            item_status_id="X" if no_loan else "0",
        )
        self.session.add(item)
        self.session.commit()
        return item

    def rule(
        self,
        rule_id: int,
        member_type_id: int = 1,
        coll_type_id: int | None = None,
        gmd_id: int | None = None,
        loan_limit: int = 2,
        loan_period_days: int = 7,
        reborrow_limit: int = 1,
        fine_per_day: float = 500,
        grace_period_days: int = 0,
    ) -> LoanRule:
        rule = LoanRule(
            rule_id=rule_id,
            member_type_id=member_type_id,
            coll_type_id=coll_type_id,
            gmd_id=gmd_id,
            loan_limit=loan_limit,
            loan_period_days=loan_period_days,
            reborrow_limit=reborrow_limit,
            fine_per_day=fine_per_day,
            grace_period_days=grace_period_days,
        )
        self.session.add(rule)
        self.session.commit()
        return rule

    def loan(
        self,
        item_code: str,
        member_id: str = "M-0001",
        loan_rule_id: int = 0,
        loan_date: date = date(2023, 12, 27),
        due_date: date = date(2024, 1, 10),
        returned: bool = False,
    ) -> LoanRecord:
        loan = LoanRecord(
            item_code=item_code,
            member_id=member_id,
            loan_rule_id=loan_rule_id,
            loan_date=loan_date,
            due_date=due_date,
            is_lent=1,
            is_return=1 if returned else 0,
            return_date=due_date if returned else None,
        )
        self.session.add(loan)
        self.session.commit()
        return loan

    def reservation(
        self, item_code: str, member_id: str, reserve_date: datetime
    ) -> ReservationRecord:
        reservation = ReservationRecord(
            item_code=item_code, member_id=member_id, reserve_date=reserve_date
        )
        self.session.add(reservation)
        self.session.commit()
        return reservation

    def holiday(self, holiday_date: date, description: str = "Holiday") -> Holiday:
        holiday = Holiday(holiday_date=holiday_date, description=description)
        self.session.add(holiday)
        self.session.commit()
        return holiday


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary database path for each test."""
    db_path = tmp_path / "test_circulation.db"
    yield db_path

    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def session_factory(test_database_url: str) -> Generator[sessionmaker, None, None]:
    """Session factory bound to the per-test database, schema created."""
    engine = create_engine(
        test_database_url,
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(bind=engine)

    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    engine.dispose()


@pytest.fixture
def test_db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session for database tests."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[CirculationConfig, None, None]:
    """Provide a test configuration pointing at the per-test database."""
    reset_config()

    config = CirculationConfig(
        server_name="test-circulation",
        server_version="0.0.1-test",
        database_path=test_db_path,
        holiday_weekdays=["Sun"],
        ignore_holidays_fine_calc=False,
        allow_ignore_rules=True,
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_CIRCULATION_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_CIRCULATION_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Circulation Fixtures ===


@pytest.fixture
def library(test_db_session: Session) -> LibraryBuilder:
    """A library with one member type (limit 3, 7 days, 500 a day) and two members."""
    builder = LibraryBuilder(test_db_session)
    builder.member_type()
    builder.member("M-0001")
    builder.member("M-0002")
    return builder


@pytest.fixture
def engine(library: LibraryBuilder, test_db_session: Session, test_config) -> CirculationEngine:
    """Circulation engine over the test session; build after seeding holidays."""
    return build_engine(test_db_session, test_config)


@pytest.fixture
def mock_get_session(test_db_session, test_config, monkeypatch):
    """
    Make the circulation tools use the test session and configuration.

    The handlers open their own session through ``get_session``; the patch
    hands them the test session so they see the seeded data.
    """

    @contextmanager
    def _mock_get_session():
        yield test_db_session

    monkeypatch.setattr("library_circulation.tools.circulation.get_session", _mock_get_session)
    monkeypatch.setattr("library_circulation.tools.circulation.get_config", lambda: test_config)

    return test_db_session


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global configuration after each test."""
    yield

    reset_config()
