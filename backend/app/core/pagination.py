"""Page/per_page query parameters for list endpoints.

Notification lists are short and already ordered by the store, so a page
is a slice of the full list rather than an OFFSET query.
"""

from dataclasses import dataclass
from typing import Annotated, TypeVar

from fastapi import Depends, Query

from app.core.responses import PaginationMeta

T = TypeVar("T")

MAX_PER_PAGE = 100


@dataclass(frozen=True)
class PaginationParams:
    page: int
    per_page: int

    def slice(self, items: list[T]) -> list[T]:
        start = (self.page - 1) * self.per_page
        return items[start : start + self.per_page]

    def meta(self, total: int) -> PaginationMeta:
        return PaginationMeta(total=total, page=self.page, per_page=self.per_page)


def pagination_params(
    page: Annotated[int, Query(ge=1, description="1-indexed page number")] = 1,
    per_page: Annotated[
        int, Query(ge=1, le=MAX_PER_PAGE, description="Items per page")
    ] = 20,
) -> PaginationParams:
    return PaginationParams(page=page, per_page=per_page)


Pagination = Annotated[PaginationParams, Depends(pagination_params)]
