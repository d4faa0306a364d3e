"""Page envelope shared by every paginated listing."""
import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from drive.config import settings

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    contents: Sequence[T]
    current_page: int
    per_page: int
    total_elements: int

    @property
    def total_page(self) -> int:
        return math.ceil(self.total_elements / self.per_page) if self.per_page else 0


def normalize(page: int, limit: int) -> tuple[int, int, int]:
    """Clamp page/limit to sane values and return (page, limit, offset)."""
    page = max(page or 1, 1)
    limit = min(max(limit or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)
    return page, limit, (page - 1) * limit


def paginate_in_memory(items: Sequence[T], page: int, limit: int) -> Page[T]:
    page, limit, offset = normalize(page, limit)
    return Page(
        contents=list(items[offset:offset + limit]),
        current_page=page,
        per_page=limit,
        total_elements=len(items),
    )
