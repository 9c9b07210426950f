"""Page slicing for result tables."""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def paginate(items: Sequence[T], page: int = 1, page_size: int = 50) -> Page[T]:
    """1-based slice. Out-of-range pages clamp into [1, total_pages]; there is always one page."""
    page_size = max(int(page_size), 1)
    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / page_size))
    page = min(max(int(page), 1), total_pages)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
    )


__all__ = ["Page", "paginate"]
