import math
from dataclasses import dataclass
from typing import Optional

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class Pagination:
    """Page cursor; ``total`` is filled in by the store that runs the count."""

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @classmethod
    def from_request(cls, page: Optional[int], page_size: Optional[int]) -> "Pagination":
        """Clamp caller-supplied values into a valid cursor."""
        page = page if page and page > 0 else 1
        page_size = page_size if page_size and page_size > 0 else DEFAULT_PAGE_SIZE
        return cls(page=page, page_size=min(page_size, MAX_PAGE_SIZE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.page_size)

    @property
    def is_last_page(self) -> bool:
        return self.page >= self.total_pages
