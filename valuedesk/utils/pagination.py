"""
Pagination Utility Module

Provides standardized pagination helpers for in-memory result sets.
"""
from typing import Any, List, Sequence

from pydantic import BaseModel


class PaginationParams(BaseModel):
    """Standard pagination parameters"""
    page: int = 1
    page_size: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def total_pages_for(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if total > 0 else 1


def clamp_page(page: int, total: int, page_size: int) -> int:
    """Keep ``page`` inside [1, total_pages]"""
    return max(1, min(page, total_pages_for(total, page_size)))


def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    page_size: int
) -> dict:
    """
    Create a paginated response dictionary.

    Args:
        items: List of items for current page
        total: Total count of all items
        page: Current page number
        page_size: Items per page

    Returns:
        Paginated response dictionary
    """
    total_pages = total_pages_for(total, page_size)

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1
    }


def paginate_list(items: Sequence[Any], page: int = 1, page_size: int = 10) -> dict:
    """
    Slice one page out of an in-memory list.

    Out-of-range pages are clamped rather than returning an empty page.
    """
    page_size = max(1, page_size)
    total = len(items)
    page = clamp_page(page, total, page_size)
    params = PaginationParams(page=page, page_size=page_size)

    return create_paginated_response(
        list(items[params.offset:params.offset + params.limit]),
        total,
        page,
        page_size,
    )
