"""
Repository base for the Library Circulation server.

Repositories keep SQL out of the rules and the engine: they take a
SQLAlchemy session, run queries through ``safe_query`` / ``safe_commit`` and
hand back Pydantic models. Business decisions are made by the callers.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from .errors import LoanConflictError, NotFoundError, StoreError
from .session import safe_commit, safe_query

ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)
T = TypeVar("T")


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 100:
            raise ValueError("Page size must be between 1 and 100")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for list operations."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class BaseRepository:
    """Holds the session and the shared pagination helper."""

    def __init__(self, session: Session):
        self.session = session

    def _query(self, query_func: Callable[[Session], T], error_msg: str) -> T:
        return safe_query(self.session, query_func, error_msg)

    def _commit(self, operation: str) -> None:
        safe_commit(self.session, operation)

    def _paginate(
        self,
        query: Select,
        pagination: PaginationParams | None,
        model_cls: type[ResponseSchemaType],
        what: str,
    ) -> PaginatedResponse[ResponseSchemaType]:
        if pagination is None:
            pagination = PaginationParams()
        pagination.validate_params()

        count_query = select(func.count()).select_from(query.subquery())
        total = (
            self._query(
                lambda s: s.execute(count_query).scalar(),
                f"Failed to count {what}",
            )
            or 0
        )

        page_query = query.offset(pagination.offset).limit(pagination.page_size)
        rows = self._query(
            lambda s: s.execute(page_query).scalars().all(),
            f"Failed to list {what}",
        )

        return PaginatedResponse[model_cls](
            items=[model_cls.model_validate(row, from_attributes=True) for row in rows],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )


__all__ = [
    "BaseRepository",
    "LoanConflictError",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "StoreError",
]
