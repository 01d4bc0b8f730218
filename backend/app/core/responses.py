"""Response envelopes.

Success bodies are ``{"data": ...}``, with ``meta`` added for lists.
Error bodies are ``{"error": {"code", "message", "details"}}`` and are only
built by the exception handlers in main.py.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    total: int
    page: int
    per_page: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """Ceiling of total / per_page; 0 for an empty list."""
        return -(-self.total // self.per_page)


class DataResponse(BaseModel, Generic[T]):
    data: T


class ListResponse(BaseModel, Generic[T]):
    data: list[T]
    meta: PaginationMeta


class ErrorDetail(BaseModel):
    """One failure: machine code, safe message, optional field details."""

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
