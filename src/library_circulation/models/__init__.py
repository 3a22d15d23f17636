"""
Library Circulation models.

Pydantic models shared by the rules, the engine and the MCP tools:
- Member: membership state and baseline loan policy
- Loan: items, loans, staged loans, reservations and fines
- Results: status enumeration, operation results and receipts
- Session: the per-member loan session
"""

from .loan import Fine, Item, Loan, Reservation, StagedLoan
from .member import LoanPolicy, LoanRule, MemberContext, MemberStatus
from .results import (
    GRACE_PERIOD_LABEL,
    BatchResult,
    CirculationStatus,
    ExtendResult,
    ItemFlushResult,
    OverdueResult,
    Receipt,
    ReceiptExtendLine,
    ReceiptFineLine,
    ReceiptLoanLine,
    ReceiptReturnLine,
    ReturnResult,
    StagingResult,
)
from .session import LoanSession

__all__ = [
    "GRACE_PERIOD_LABEL",
    "BatchResult",
    "CirculationStatus",
    "ExtendResult",
    "Fine",
    "Item",
    "ItemFlushResult",
    "Loan",
    "LoanPolicy",
    "LoanRule",
    "LoanSession",
    "MemberContext",
    "MemberStatus",
    "OverdueResult",
    "Receipt",
    "ReceiptExtendLine",
    "ReceiptFineLine",
    "ReceiptLoanLine",
    "ReceiptReturnLine",
    "Reservation",
    "ReturnResult",
    "StagedLoan",
    "StagingResult",
]
