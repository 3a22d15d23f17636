#!/usr/bin/env python3
"""
Initialize the Library Circulation database.

This script:
1. Creates all database tables
2. Optionally loads sample data (member types, loan rules, catalogue, members)
3. Verifies the database is ready for the MCP server

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data]
"""

import argparse
import logging
import sys
from datetime import date, datetime, timedelta

from sqlalchemy import inspect

from library_circulation.database import (
    Base,
    Biblio,
    CollectionType,
    DatabaseManager,
    Gmd,
    Holiday,
    ItemRecord,
    ItemStatus,
    LoanRule,
    Member,
    MemberStatusEnum,
    MemberType,
    ReservationRecord,
    get_db_manager,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(
        description="Initialize the Library Circulation MCP Server database"
    )
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample data...")
            load_sample_data(db_manager)

        tables = set(inspect(db_manager.engine).get_table_names())
        missing_tables = set(Base.metadata.tables) - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", sorted(missing_tables))
            sys.exit(1)

        logger.info("Created tables: %s", ", ".join(sorted(tables)))
        logger.info("Database initialization complete")

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


def load_sample_data(db_manager: DatabaseManager) -> None:
    """
    Load a small library for trying out the circulation tools.

    This creates:
    - Two member types with baseline policies and a few loan rules
    - Collection types, material designations and item statuses
    - Biblios with several items, one of them not for loan
    - Active, pending and expired members, and one reservation
    """
    today = date.today()

    with db_manager.session_scope() as session:
        session.add_all(
            [
                CollectionType(coll_type_id=1, coll_type_name="Circulating"),
                CollectionType(coll_type_id=2, coll_type_name="Reference"),
                Gmd(gmd_id=1, gmd_name="Text"),
                Gmd(gmd_id=2, gmd_name="Audio CD"),
                ItemStatus(item_status_id="0", item_status_name="Available", no_loan=0),
                ItemStatus(item_status_id="R", item_status_name="Repair", no_loan=1),
            ]
        )
        session.add_all(
            [
                MemberType(
                    member_type_id=1,
                    member_type_name="Student",
                    loan_limit=3,
                    loan_period_days=7,
                    reborrow_limit=1,
                    fine_per_day=500,
                    grace_period_days=1,
                ),
                MemberType(
                    member_type_id=2,
                    member_type_name="Staff",
                    loan_limit=10,
                    loan_period_days=14,
                    reborrow_limit=3,
                    fine_per_day=250,
                    grace_period_days=2,
                ),
            ]
        )
        session.flush()

        session.add_all(
            [
                LoanRule(
                    rule_id=1,
                    member_type_id=1,
                    coll_type_id=1,
                    gmd_id=1,
                    loan_limit=2,
                    loan_period_days=10,
                    reborrow_limit=1,
                    fine_per_day=500,
                    grace_period_days=0,
                ),
                LoanRule(
                    rule_id=2,
                    member_type_id=1,
                    coll_type_id=2,
                    gmd_id=None,
                    loan_limit=1,
                    loan_period_days=2,
                    reborrow_limit=0,
                    fine_per_day=1000,
                    grace_period_days=0,
                ),
                LoanRule(
                    rule_id=3,
                    member_type_id=1,
                    coll_type_id=None,
                    gmd_id=2,
                    loan_limit=1,
                    loan_period_days=3,
                    reborrow_limit=0,
                    fine_per_day=750,
                    grace_period_days=1,
                ),
            ]
        )

        biblios = [
            Biblio(
                biblio_id=1, title="Introduction to Algorithms", classification="005.1", gmd_id=1
            ),
            Biblio(biblio_id=2, title="Oxford English Dictionary", classification="423", gmd_id=1),
            Biblio(biblio_id=3, title="Goldberg Variations", classification="786.2", gmd_id=2),
        ]
        session.add_all(biblios)
        session.flush()

        items = [
            ItemRecord(item_code="B00001", biblio_id=1, coll_type_id=1, item_status_id="0"),
            ItemRecord(item_code="B00002", biblio_id=1, coll_type_id=1, item_status_id="0"),
            ItemRecord(item_code="B00003", biblio_id=1, coll_type_id=1, item_status_id="R"),
            ItemRecord(item_code="R00001", biblio_id=2, coll_type_id=2, item_status_id="0"),
            ItemRecord(item_code="C00001", biblio_id=3, coll_type_id=1, item_status_id="0"),
        ]
        session.add_all(items)

        members = [
            Member(
                member_id="M-0001",
                member_name="Ada Lovelace",
                member_type_id=1,
                status=MemberStatusEnum.ACTIVE,
                expire_date=today + timedelta(days=365),
            ),
            Member(
                member_id="M-0002",
                member_name="Alan Turing",
                member_type_id=2,
                status=MemberStatusEnum.ACTIVE,
                expire_date=today + timedelta(days=30),
            ),
            Member(
                member_id="M-0003",
                member_name="Grace Hopper",
                member_type_id=1,
                status=MemberStatusEnum.PENDING,
                expire_date=today + timedelta(days=365),
            ),
            Member(
                member_id="M-0004",
                member_name="Edsger Dijkstra",
                member_type_id=2,
                status=MemberStatusEnum.ACTIVE,
                expire_date=today - timedelta(days=1),
            ),
        ]
        session.add_all(members)
        session.flush()

        session.add(
            ReservationRecord(
                member_id="M-0002",
                item_code="B00002",
                reserve_date=datetime.now() - timedelta(days=2),
            )
        )
        session.add(Holiday(holiday_date=date(today.year, 12, 25), description="Christmas Day"))

        logger.info("Created %d biblios and %d items", len(biblios), len(items))
        logger.info("Created %d members, 3 loan rules and 1 reservation", len(members))


if __name__ == "__main__":
    main()
