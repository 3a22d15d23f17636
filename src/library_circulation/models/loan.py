"""
Circulation records for the circulation engine.

- Item: a lendable copy of a bibliographic title
- Loan: a persisted loan; mutated by return and renewal, never deleted
- StagedLoan: an intent to borrow held in a loan session until commit
- Reservation: a member's place in an item's reservation queue
- Fine: an overdue charge created when a late item is returned
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class Item(BaseModel):
    """A lendable copy together with the biblio fields circulation needs."""

    item_code: str = Field(..., description="Barcode / item code", min_length=1)
    biblio_id: int = Field(..., description="Bibliographic record identifier")
    title: str = Field(..., description="Title of the biblio")
    classification: str | None = Field(None, description="Classification number")
    coll_type_id: int | None = Field(None, description="Collection type identifier")
    gmd_id: int | None = Field(None, description="General material designation identifier")
    no_loan: bool = Field(
        default=False,
        description="True when the item status forbids lending",
    )

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Loan(BaseModel):
    """
    A loan row.

    A loan is "currently out" while ``is_lent`` is set and ``is_return`` is
    not. At most one loan per item may be currently out.
    """

    loan_id: int = Field(..., description="Loan identifier")
    item_code: str = Field(..., description="Lent item code")
    member_id: str = Field(..., description="Borrowing member")
    loan_rule_id: int = Field(default=0, description="Applied loan rule, 0 for baseline", ge=0)
    loan_date: date = Field(..., description="Date the loan was made")
    due_date: date = Field(..., description="Date the item is due back")
    renewed: int = Field(default=0, description="Number of renewals", ge=0)
    is_lent: bool = Field(default=True)
    is_return: bool = Field(default=False)
    return_date: date | None = Field(None, description="Date the item came back")

    @property
    def is_out(self) -> bool:
        return self.is_lent and not self.is_return

    model_config = ConfigDict(from_attributes=True)


class StagedLoan(BaseModel):
    """An item a member intends to borrow, held until the session is committed."""

    item_code: str
    loan_rule_id: int = Field(default=0, ge=0)
    title: str = ""
    classification: str | None = None
    loan_date: date
    due_date: date

    model_config = ConfigDict(frozen=True)


class Reservation(BaseModel):
    """A reservation queue entry. The earliest ``reserved_at`` has priority."""

    reserve_id: int
    item_code: str
    member_id: str
    reserved_at: datetime

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Fine(BaseModel):
    """An overdue fine debited to a member."""

    fine_id: int | None = None
    member_id: str
    fines_date: date
    debet: float = Field(..., ge=0.0)
    credit: float = Field(default=0.0, ge=0.0)
    description: str = ""

    model_config = ConfigDict(from_attributes=True)
