"""
Database package for the Library Circulation server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories for members, the catalogue and the loan ledger
- The loan history writer (history.py)
"""

from .catalog_repository import CatalogRepository
from .history import LoanHistoryWriter, SqlLoanHistory
from .loan_repository import LoanRepository
from .member_repository import MemberRepository, derive_member_status
from .repository import (
    BaseRepository,
    LoanConflictError,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
    StoreError,
)
from .schema import (
    Base,
    Biblio,
    CollectionType,
    FineRecord,
    Gmd,
    Holiday,
    ItemRecord,
    ItemStatus,
    LoanHistoryRecord,
    LoanRecord,
    LoanRule,
    Member,
    MemberStatusEnum,
    MemberType,
    ReservationRecord,
)
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    safe_commit,
    safe_query,
    session_scope,
)

__all__ = [
    "Base",
    "BaseRepository",
    "Biblio",
    "CatalogRepository",
    "CollectionType",
    "DatabaseManager",
    "FineRecord",
    "Gmd",
    "Holiday",
    "ItemRecord",
    "ItemStatus",
    "LoanConflictError",
    "LoanHistoryRecord",
    "LoanHistoryWriter",
    "LoanRecord",
    "LoanRepository",
    "LoanRule",
    "Member",
    "MemberRepository",
    "MemberStatusEnum",
    "MemberType",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "ReservationRecord",
    "SqlLoanHistory",
    "StoreError",
    "derive_member_status",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
    "session_scope",
]
