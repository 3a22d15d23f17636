"""
Operation results and receipts.

Every circulation operation answers with a discrete ``CirculationStatus``
plus structured detail (overdue days, fine amount, reserving member) that a
caller can render. Expected business conditions never surface as
exceptions.

The receipt accumulates line items for loans, returns, extensions and fines
across a circulation session for downstream printing.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from .loan import Fine, StagedLoan


class CirculationStatus(str, Enum):
    """Outcome of a circulation operation."""

    OK = "ok"
    LOAN_LIMIT_REACHED = "loan_limit_reached"
    ITEM_NOT_FOUND = "item_not_found"
    ITEM_SESSION_ADDED = "item_session_added"
    ITEM_UNAVAILABLE = "item_unavailable"
    TRANS_FLUSH_ERROR = "trans_flush_error"
    TRANS_FLUSH_SUCCESS = "trans_flush_success"
    LOAN_NOT_PERMITTED = "loan_not_permitted"
    LOAN_NOT_PERMITTED_PENDING = "loan_not_permitted_pending"
    ITEM_LOAN_FORBID = "item_loan_forbid"
    ITEM_RESERVED = "item_reserved"


GRACE_PERIOD_LABEL = "On Grace Period"


class OverdueResult(BaseModel):
    """
    Overdue computation for a single loan.

    When the return falls inside a grace period ``on_grace`` is set, ``days``
    is None and ``value`` is 0.
    """

    item_code: str
    days: int | None = Field(None, description="Overdue days charged, None on grace", ge=1)
    value: float = Field(default=0.0, description="Fine amount", ge=0.0)
    on_grace: bool = False

    @property
    def label(self) -> str:
        if self.on_grace:
            return GRACE_PERIOD_LABEL
        return f"{self.days} day(s)"

    @property
    def is_chargeable(self) -> bool:
        return not self.on_grace and self.days is not None and self.value > 0


class StagingResult(BaseModel):
    """Outcome of adding an item to a loan session."""

    status: CirculationStatus
    item_code: str
    staged: StagedLoan | None = None
    reserved_by: str | None = None
    loan_limit: int | None = None
    current_count: int | None = None

    @property
    def added(self) -> bool:
        return self.status == CirculationStatus.ITEM_SESSION_ADDED


class ItemFlushResult(BaseModel):
    """Per-item outcome of a commit."""

    item_code: str
    status: CirculationStatus
    loan_id: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == CirculationStatus.TRANS_FLUSH_SUCCESS


class BatchResult(BaseModel):
    """Outcome of committing a loan session."""

    status: CirculationStatus = CirculationStatus.TRANS_FLUSH_SUCCESS
    items: list[ItemFlushResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemFlushResult]:
        return [item for item in self.items if item.ok]

    @property
    def failed(self) -> list[ItemFlushResult]:
        return [item for item in self.items if not item.ok]


class ReturnResult(BaseModel):
    """Outcome of returning a loan."""

    status: CirculationStatus
    loan_id: int
    item_code: str | None = None
    return_date: date | None = None
    overdue: OverdueResult | None = None
    fine: Fine | None = None
    reserved_by: str | None = Field(
        None,
        description="Another member holding a reservation on the returned item",
    )
    warnings: list[str] = Field(default_factory=list)


class ExtendResult(BaseModel):
    """Outcome of renewing a loan."""

    status: CirculationStatus
    loan_id: int
    item_code: str | None = None
    due_date: date | None = None
    renewed: int | None = None
    overdue: OverdueResult | None = None
    fine: Fine | None = None
    reserved_by: str | None = None
    warnings: list[str] = Field(default_factory=list)


# === Receipt ===


class ReceiptLoanLine(BaseModel):
    loan_id: int
    item_code: str
    title: str = ""
    classification: str | None = None
    loan_date: date
    due_date: date


class ReceiptReturnLine(BaseModel):
    loan_id: int
    item_code: str
    title: str = ""
    classification: str | None = None
    return_date: date
    overdue: OverdueResult | None = None


class ReceiptExtendLine(BaseModel):
    loan_id: int
    item_code: str
    title: str = ""
    classification: str | None = None
    loan_date: date
    due_date: date


class ReceiptFineLine(BaseModel):
    item_code: str
    days: int | None = None
    value: float = 0.0


class Receipt(BaseModel):
    """
    Printable record of a circulation session.

    Purely additive: the engine appends lines and stamps the header on commit.
    """

    member_id: str | None = None
    member_name: str | None = None
    member_type: str | None = None
    issued_at: datetime | None = None
    loans: list[ReceiptLoanLine] = Field(default_factory=list)
    returns: list[ReceiptReturnLine] = Field(default_factory=list)
    extensions: list[ReceiptExtendLine] = Field(default_factory=list)
    fines: list[ReceiptFineLine] = Field(default_factory=list)

    @property
    def has_activity(self) -> bool:
        return bool(self.loans or self.returns or self.extensions)
