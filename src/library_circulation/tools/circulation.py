"""
Circulation tools for the Library Circulation MCP server.

Three tools expose the circulation engine:
1. checkout_items: stage a member's items and commit them as loans
2. return_loan: return a loan, settling any overdue fine
3. extend_loan: renew a loan unless someone else has reserved the item

Every call opens its own database session and loan session, so the tools
hold no state between calls. Business outcomes (limit reached, item
reserved, ...) are regular results carrying a status; only invalid input,
unknown members and storage faults are reported with ``isError``.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..circulation.engine import build_engine
from ..config import get_config
from ..database.repository import StoreError
from ..database.session import get_session
from ..models.results import CirculationStatus, ExtendResult, ReturnResult

logger = logging.getLogger(__name__)

MEMBER_ID_PATTERN = r"^[A-Za-z0-9_.-]{1,20}$"


def _error(message: str) -> dict[str, Any]:
    return {
        "isError": True,
        "content": [{"type": "text", "text": message}],
    }


def _unknown_member(member_id: str) -> dict[str, Any]:
    logger.info("Circulation request for unknown member %s", member_id)
    return _error(f"Member {member_id} not found")


# =============================================================================
# CHECKOUT TOOL
# =============================================================================


class CheckoutItemsInput(BaseModel):
    """Input schema for the checkout_items tool."""

    member_id: str = Field(
        ...,
        description="Identifier of the borrowing member",
        pattern=MEMBER_ID_PATTERN,
        examples=["M-0001", "2024-STU-17"],
    )

    item_codes: list[str] = Field(
        ...,
        description="Codes of the items to borrow, processed in order",
        min_length=1,
        max_length=50,
        examples=[["B00001", "B00002"]],
    )

    ignore_rules: bool = Field(
        default=False,
        description="Skip reservation priority and loan limit checks (librarian override)",
    )

    @field_validator("item_codes")
    @classmethod
    def validate_item_codes(cls, v: list[str]) -> list[str]:
        """Strip whitespace, drop blanks and duplicates, keep order."""
        codes: list[str] = []
        for code in v:
            code = code.strip()
            if code and code not in codes:
                codes.append(code)
        if not codes:
            raise ValueError("At least one item code is required")
        return codes


async def checkout_items_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the checkout_items tool.

    Items that fail a staging check are reported with their status and
    skipped; the remaining items are committed.
    """
    try:
        params = CheckoutItemsInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid checkout parameters: %s", e)
        return _error(f"Invalid checkout parameters: {e}")

    try:
        with get_session() as session:
            engine = build_engine(session, get_config())
            loan_session = engine.open_session(params.member_id)
            if loan_session is None:
                return _unknown_member(params.member_id)

            staging = [
                engine.add_item(loan_session, code, ignore_rules=params.ignore_rules)
                for code in params.item_codes
            ]
            batch = engine.commit(loan_session)

    except StoreError as e:
        logger.exception("Checkout database error")
        return _error(f"Checkout failed: {e!s}")

    loans = {item.item_code: item.loan_id for item in batch.succeeded}
    lines = []
    for result in staging:
        if result.item_code in loans:
            lines.append(
                f"{result.item_code}: loan {loans[result.item_code]}, "
                f"due {result.staged.due_date.isoformat()}"
            )
        elif not result.added:
            lines.append(f"{result.item_code}: {result.status.value}")
    for failure in batch.failed:
        lines.append(f"{failure.item_code}: {failure.status.value}")

    message = (
        f"Checked out {len(loans)} of {len(params.item_codes)} item(s) "
        f"for member {params.member_id}."
    )
    if lines:
        message += "\n" + "\n".join(lines)

    return {
        "content": [{"type": "text", "text": message}],
        "data": {
            "status": batch.status.value,
            "staging": [result.model_dump(mode="json") for result in staging],
            "items": [item.model_dump(mode="json") for item in batch.items],
            "warnings": batch.warnings,
            "receipt": loan_session.receipt.model_dump(mode="json"),
        },
    }


# =============================================================================
# RETURN AND EXTEND TOOLS
# =============================================================================


class LoanActionInput(BaseModel):
    """Input schema shared by return_loan and extend_loan."""

    member_id: str = Field(
        ...,
        description="Identifier of the member holding the loan",
        pattern=MEMBER_ID_PATTERN,
        examples=["M-0001"],
    )

    loan_id: int = Field(
        ...,
        description="Identifier of the loan",
        ge=1,
        examples=[42],
    )


def _describe_overdue(result: ReturnResult | ExtendResult) -> str:
    overdue = result.overdue
    if overdue is None:
        return " Returned on time - no fines."
    if overdue.on_grace:
        return f" {overdue.label} - no fines."
    return f" Overdue {overdue.days} day(s). Fine: {overdue.value:.2f}"


async def return_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the return_loan tool.

    A reservation by another member does not block the return; it is
    reported so the item can be put aside for pickup.
    """
    try:
        params = LoanActionInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid return parameters: %s", e)
        return _error(f"Invalid return parameters: {e}")

    try:
        with get_session() as session:
            engine = build_engine(session, get_config())
            loan_session = engine.open_session(params.member_id)
            if loan_session is None:
                return _unknown_member(params.member_id)
            result = engine.return_item(loan_session, params.loan_id)
            engine.commit(loan_session)

    except StoreError as e:
        logger.exception("Return database error")
        return _error(f"Return failed: {e!s}")

    if result.status == CirculationStatus.ITEM_NOT_FOUND:
        return _error(f"Loan {params.loan_id} is not an open loan of member {params.member_id}")

    message = f"Returned item '{result.item_code}' (loan {result.loan_id})."
    message += _describe_overdue(result)
    if result.reserved_by:
        message += f" Item is reserved by member {result.reserved_by}; hold it for pickup."

    return {
        "content": [{"type": "text", "text": message}],
        "data": {
            "return": result.model_dump(mode="json"),
            "receipt": loan_session.receipt.model_dump(mode="json"),
        },
    }


async def extend_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the extend_loan tool."""
    try:
        params = LoanActionInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid extend parameters: %s", e)
        return _error(f"Invalid extend parameters: {e}")

    try:
        with get_session() as session:
            engine = build_engine(session, get_config())
            loan_session = engine.open_session(params.member_id)
            if loan_session is None:
                return _unknown_member(params.member_id)
            result = engine.extend_loan(loan_session, params.loan_id)
            engine.commit(loan_session)

    except StoreError as e:
        logger.exception("Extend database error")
        return _error(f"Extend failed: {e!s}")

    if result.status == CirculationStatus.ITEM_NOT_FOUND:
        return _error(f"Loan {params.loan_id} is not an open loan of member {params.member_id}")

    if result.status == CirculationStatus.ITEM_RESERVED:
        message = (
            f"Loan {result.loan_id} cannot be extended: item '{result.item_code}' "
            f"is reserved by member {result.reserved_by}."
        )
    else:
        message = (
            f"Extended loan {result.loan_id} for item '{result.item_code}'. "
            f"New due date: {result.due_date.isoformat()} (renewed {result.renewed} time(s))."
        )
        if result.overdue is not None:
            message += _describe_overdue(result)

    return {
        "content": [{"type": "text", "text": message}],
        "data": {
            "extend": result.model_dump(mode="json"),
            "receipt": loan_session.receipt.model_dump(mode="json"),
        },
    }


# =============================================================================
# TOOL DEFINITIONS
# =============================================================================

checkout_items = {
    "name": "checkout_items",
    "description": (
        "Lend one or more items to a member. Each item is checked for availability, "
        "loan restrictions, reservation priority and the member's loan limit, then "
        "committed as a loan with a holiday-aware due date."
    ),
    "inputSchema": CheckoutItemsInput.model_json_schema(),
    "handler": checkout_items_handler,
}

return_loan = {
    "name": "return_loan",
    "description": (
        "Return a member's loan. Overdue loans are charged a fine unless the return "
        "falls within a grace period. Reports when another member is waiting for the item."
    ),
    "inputSchema": LoanActionInput.model_json_schema(),
    "handler": return_loan_handler,
}

extend_loan = {
    "name": "extend_loan",
    "description": (
        "Renew a member's loan from today. Any overdue fine is settled first. "
        "Refused when another member has reserved the item."
    ),
    "inputSchema": LoanActionInput.model_json_schema(),
    "handler": extend_loan_handler,
}
