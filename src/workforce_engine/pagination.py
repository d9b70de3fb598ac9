"""Pagination helpers shared by list operations."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

# Server-side ceilings on page size
ATTENDANCE_PAGE_LIMIT = 100
LEAVE_PAGE_LIMIT = 100
EMPLOYEE_PAGE_LIMIT = 50
PAYROLL_PAGE_LIMIT = 50
GOAL_PAGE_LIMIT = 50

# Keeps OFFSET within a 64-bit integer for any ceiling above
MAX_PAGE = 1_000_000


@dataclass(frozen=True)
class PageRequest:
    """Normalized page/limit pair."""

    page: int
    limit: int

    @classmethod
    def build(cls, page: int | None, limit: int | None, *, default: int, ceiling: int) -> PageRequest:
        """Clamp caller input: 1 <= page <= MAX_PAGE, 1 <= limit <= ceiling."""
        page = min(page, MAX_PAGE) if page and page > 0 else 1
        limit = limit if limit and limit > 0 else default
        return cls(page=page, limit=min(limit, ceiling))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    """A page of results plus totals."""

    items: list[T]
    total: int
    request: PageRequest

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return math.ceil(self.total / self.request.limit)

    def pagination(self) -> dict[str, int]:
        return {
            "currentPage": self.request.page,
            "totalPages": self.total_pages,
            "totalItems": self.total,
            "itemsPerPage": self.request.limit,
        }
