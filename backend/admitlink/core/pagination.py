"""Page/limit normalisation shared by every paged listing."""

from dataclasses import dataclass
import math
from typing import Generic, List, Optional, TypeVar

from .config import settings

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def normalize(
        cls, page: Optional[int], limit: Optional[int], default_limit: int
    ) -> "PageRequest":
        """Floor page at 1 and clamp limit to 1..max_page_size."""
        safe_page = max(int(page or 1), 1)
        safe_limit = min(max(int(limit or default_limit), 1), settings.max_page_size)
        return cls(page=safe_page, limit=safe_limit)


def total_pages(total: int, limit: int) -> int:
    """An empty listing still has one (empty) page."""
    return max(math.ceil(total / limit), 1)


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    request: PageRequest

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.request.limit)
