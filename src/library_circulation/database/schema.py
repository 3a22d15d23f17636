"""
SQLAlchemy database schema for the Library Circulation server.

The tables hold the entities the circulation engine needs for correctness:
membership types and members (read-only to circulation), the catalogue
(biblios, items, collection types, material designations, item statuses),
loan rules, loans, reservations, fines, explicit holiday dates and the loan
history ledger.

Central invariant: an item has at most one loan that is lent and not yet
returned. The partial unique index ``uq_loan_item_out`` enforces it in the
database so concurrent commits for the same item cannot both succeed.
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

ITEM_OUT_CONDITION = "is_lent = 1 AND is_return = 0"


class MemberStatusEnum(str, enum.Enum):
    """Database enum for member status."""

    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"


class MemberType(Base):
    """
    Membership types - each carries the baseline loan policy used when no
    loan rule matches an item.
    """

    __tablename__ = "member_types"

    member_type_id = Column(Integer, primary_key=True)
    member_type_name = Column(String(50), nullable=False, unique=True)
    loan_limit = Column(Integer, nullable=False, default=0)
    loan_period_days = Column(Integer, nullable=False, default=0)
    reborrow_limit = Column(Integer, nullable=False, default=0)
    fine_per_day = Column(Float, nullable=False, default=0.0)
    grace_period_days = Column(Integer, nullable=False, default=0)

    members = relationship("Member", back_populates="member_type")
    loan_rules = relationship("LoanRule", back_populates="member_type")

    __table_args__ = (
        CheckConstraint("loan_limit >= 0", name="check_member_type_loan_limit"),
        CheckConstraint("fine_per_day >= 0", name="check_member_type_fine"),
    )


class Member(Base):
    """Members - owned by the membership service, read by circulation."""

    __tablename__ = "members"

    member_id = Column(String(20), primary_key=True)
    member_name = Column(String(100), nullable=False)
    member_type_id = Column(Integer, ForeignKey("member_types.member_type_id"), nullable=False)
    status = Column(Enum(MemberStatusEnum), nullable=False, default=MemberStatusEnum.ACTIVE)
    expire_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    member_type = relationship("MemberType", back_populates="members")
    loans = relationship("LoanRecord", back_populates="member")
    reservations = relationship("ReservationRecord", back_populates="member")

    __table_args__ = (
        Index("idx_member_type", "member_type_id"),
        Index("idx_member_status", "status"),
    )


class CollectionType(Base):
    """Library-defined groupings of items (reference, circulating, ...)."""

    __tablename__ = "collection_types"

    coll_type_id = Column(Integer, primary_key=True)
    coll_type_name = Column(String(50), nullable=False, unique=True)


class Gmd(Base):
    """General material designations (book, CD, ...)."""

    __tablename__ = "gmds"

    gmd_id = Column(Integer, primary_key=True)
    gmd_name = Column(String(50), nullable=False, unique=True)


class ItemStatus(Base):
    """Item statuses; ``no_loan`` forbids lending outright."""

    __tablename__ = "item_statuses"

    item_status_id = Column(String(3), primary_key=True)
    item_status_name = Column(String(50), nullable=False)
    no_loan = Column(Integer, nullable=False, default=0)


class Biblio(Base):
    """Bibliographic titles."""

    __tablename__ = "biblios"

    biblio_id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    classification = Column(String(40), nullable=True)
    call_number = Column(String(50), nullable=True)
    gmd_id = Column(Integer, ForeignKey("gmds.gmd_id"), nullable=True)

    gmd = relationship("Gmd")
    items = relationship("ItemRecord", back_populates="biblio")


class ItemRecord(Base):
    """Physical copies of a biblio."""

    __tablename__ = "items"

    item_code = Column(String(20), primary_key=True)
    biblio_id = Column(Integer, ForeignKey("biblios.biblio_id"), nullable=False)
    coll_type_id = Column(Integer, ForeignKey("collection_types.coll_type_id"), nullable=True)
    item_status_id = Column(String(3), ForeignKey("item_statuses.item_status_id"), nullable=True)
    call_number = Column(String(50), nullable=True)

    biblio = relationship("Biblio", back_populates="items")
    collection_type = relationship("CollectionType")
    item_status = relationship("ItemStatus")

    __table_args__ = (Index("idx_item_biblio", "biblio_id"),)


class LoanRule(Base):
    """
    Loan rules keyed by member type plus an optional collection type and an
    optional material designation.
    """

    __tablename__ = "loan_rules"

    rule_id = Column(Integer, primary_key=True)
    member_type_id = Column(Integer, ForeignKey("member_types.member_type_id"), nullable=False)
    coll_type_id = Column(Integer, ForeignKey("collection_types.coll_type_id"), nullable=True)
    gmd_id = Column(Integer, ForeignKey("gmds.gmd_id"), nullable=True)
    loan_limit = Column(Integer, nullable=False, default=0)
    loan_period_days = Column(Integer, nullable=False, default=0)
    reborrow_limit = Column(Integer, nullable=False, default=0)
    fine_per_day = Column(Float, nullable=False, default=0.0)
    grace_period_days = Column(Integer, nullable=False, default=0)

    member_type = relationship("MemberType", back_populates="loan_rules")

    __table_args__ = (
        Index("idx_loan_rule_lookup", "member_type_id", "coll_type_id", "gmd_id"),
        CheckConstraint("loan_limit >= 0", name="check_loan_rule_limit"),
        CheckConstraint("fine_per_day >= 0", name="check_loan_rule_fine"),
    )


class LoanRecord(Base):
    """
    Loans. Created on commit, mutated by return and renewal, never deleted.

    ``loan_rule_id`` is 0 when the member type baseline applied.
    """

    __tablename__ = "loans"

    loan_id = Column(Integer, primary_key=True, autoincrement=True)
    item_code = Column(String(20), ForeignKey("items.item_code"), nullable=False)
    member_id = Column(String(20), ForeignKey("members.member_id"), nullable=False)
    loan_rule_id = Column(Integer, nullable=False, default=0)
    loan_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    renewed = Column(Integer, nullable=False, default=0)
    is_lent = Column(Integer, nullable=False, default=1)
    is_return = Column(Integer, nullable=False, default=0)
    return_date = Column(Date, nullable=True)

    input_date = Column(DateTime, nullable=False, default=func.now())
    last_update = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    member = relationship("Member", back_populates="loans")
    item = relationship("ItemRecord")

    __table_args__ = (
        Index("idx_loan_member", "member_id"),
        Index("idx_loan_item", "item_code"),
        Index(
            "uq_loan_item_out",
            "item_code",
            unique=True,
            sqlite_where=text(ITEM_OUT_CONDITION),
            postgresql_where=text(ITEM_OUT_CONDITION),
        ),
        CheckConstraint("renewed >= 0", name="check_loan_renewed_non_negative"),
        CheckConstraint("is_lent IN (0, 1)", name="check_loan_is_lent_flag"),
        CheckConstraint("is_return IN (0, 1)", name="check_loan_is_return_flag"),
    )


class ReservationRecord(Base):
    """Reservations; the earliest ``reserve_date`` per item has priority."""

    __tablename__ = "reservations"

    reserve_id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(String(20), ForeignKey("members.member_id"), nullable=False)
    item_code = Column(String(20), ForeignKey("items.item_code"), nullable=False)
    reserve_date = Column(DateTime, nullable=False, default=func.now())

    member = relationship("Member", back_populates="reservations")

    __table_args__ = (Index("idx_reservation_queue", "item_code", "reserve_date"),)


class FineRecord(Base):
    """Member fines ledger."""

    __tablename__ = "fines"

    fines_id = Column(Integer, primary_key=True, autoincrement=True)
    fines_date = Column(Date, nullable=False)
    member_id = Column(String(20), ForeignKey("members.member_id"), nullable=False)
    debet = Column(Float, nullable=False, default=0.0)
    credit = Column(Float, nullable=False, default=0.0)
    description = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_fines_member", "member_id"),
        CheckConstraint("debet >= 0", name="check_fines_debet_non_negative"),
    )


class Holiday(Base):
    """Explicit holiday dates (weekly holidays come from configuration)."""

    __tablename__ = "holidays"

    holiday_id = Column(Integer, primary_key=True, autoincrement=True)
    holiday_date = Column(Date, nullable=False, unique=True)
    description = Column(String(100), nullable=True)


class LoanHistoryRecord(Base):
    """
    Denormalised audit mirror of loans.

    One row per loan, written when the loan is committed and updated on
    return and renewal. Snapshot columns keep titles and names readable even
    after the catalogue or membership changes.
    """

    __tablename__ = "loan_history"

    loan_id = Column(Integer, primary_key=True)
    item_code = Column(String(20), nullable=False)
    member_id = Column(String(20), nullable=False)
    loan_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    renewed = Column(Integer, nullable=False, default=0)
    is_lent = Column(Integer, nullable=False, default=1)
    is_return = Column(Integer, nullable=False, default=0)
    return_date = Column(Date, nullable=True)
    input_date = Column(DateTime, nullable=False, default=func.now())
    last_update = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    title = Column(Text, nullable=True)
    biblio_id = Column(Integer, nullable=True)
    call_number = Column(String(50), nullable=True)
    classification = Column(String(40), nullable=True)
    gmd_name = Column(String(50), nullable=True)
    collection_type_name = Column(String(50), nullable=True)
    member_name = Column(String(100), nullable=True)
    member_type_name = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_history_member", "member_id"),
        Index("idx_history_item", "item_code"),
    )
