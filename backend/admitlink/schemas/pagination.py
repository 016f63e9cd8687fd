from typing import Generic, List, TypeVar

from pydantic import BaseModel

from ..core.pagination import Page
from ._strict_base import StrictModel

ItemT = TypeVar("ItemT", bound=BaseModel)


class PaginationMeta(StrictModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page) -> "PaginationMeta":
        return cls(
            page=page.request.page,
            limit=page.request.limit,
            total=page.total,
            total_pages=page.total_pages,
        )


class PaginatedResponse(StrictModel, Generic[ItemT]):
    """``{items, pagination}`` envelope shared by every paged listing."""

    items: List[ItemT]
    pagination: PaginationMeta
