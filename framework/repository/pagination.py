"""
Page-at-a-time materialization of a deferred query.
"""

import math
from typing import Generic, List, TypeVar

from framework.database.query import EntityQuery

T = TypeVar("T")


class PaginatedList(Generic[T]):
    """One page of results plus the paging metadata."""

    def __init__(self, items: List[T], count: int, page_index: int, page_size: int):
        self.items = items
        self.page_index = page_index
        self.page_size = page_size
        self.total_count = count
        self.total_pages = math.ceil(count / page_size) if page_size else 0

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 1

    @property
    def has_next_page(self) -> bool:
        return self.page_index < self.total_pages

    @classmethod
    async def create(cls, query: EntityQuery[T], page_index: int, page_size: int) -> "PaginatedList[T]":
        """Count the query, then fetch page `page_index` (1-based)."""
        if page_index < 1:
            raise ValueError("page_index starts at 1")
        if page_size < 1:
            raise ValueError("page_size must be positive")
        count = await query.count()
        items = await query.offset((page_index - 1) * page_size).limit(page_size).to_list()
        return cls(items, count, page_index, page_size)
