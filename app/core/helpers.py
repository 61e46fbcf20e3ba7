"""
Generic helper functions shared across apps.

Helpers:
    calculate_pagination: Pagination metadata for list responses
"""

from __future__ import annotations

import math


def calculate_pagination(total: int, page: int, per_page: int) -> dict:
    """
    Calculate pagination metadata.

    The requested page is reported as-is (a page past the end simply
    has no items), so callers can echo back what was asked for.

    Args:
        total: Total number of items
        page: Current page number (1-indexed)
        per_page: Items per page

    Returns:
        Dict with pagination metadata

    Example:
        pagination = calculate_pagination(total=45, page=2, per_page=20)
        # {
        #     "page": 2,
        #     "page_size": 20,
        #     "total_count": 45,
        #     "total_pages": 3,
        #     "has_next": True,
        #     "has_previous": True,
        # }
    """
    total_pages = math.ceil(total / per_page) if per_page > 0 else 0

    return {
        "page": page,
        "page_size": per_page,
        "total_count": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }
