"""Paged collection results."""

from dataclasses import dataclass, field
from math import ceil
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a collection listing."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 10

    @property
    def total_pages(self) -> int:
        """Get the number of pages for the total."""
        if self.per_page <= 0:
            return 1 if self.total else 0
        return ceil(self.total / self.per_page)

    @property
    def has_more(self) -> bool:
        """Check if pages follow this one."""
        return self.page < self.total_pages


def paginate(items: list[T], page: int, per_page: int, offset: int | None = None) -> list[T]:
    """Slice one page out of an ordered list.

    Args:
        items: Full ordered result.
        page: 1-based page number.
        per_page: Page size, -1 for everything.
        offset: Explicit row offset, overrides page.
    """
    if offset is not None:
        start = max(offset, 0)
    elif per_page < 0:
        start = 0
    else:
        start = (max(page, 1) - 1) * per_page
    if per_page < 0:
        return items[start:]
    return items[start:start + per_page]
