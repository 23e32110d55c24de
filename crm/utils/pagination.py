"""Pagination utilities for list endpoints."""

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Query as SQLAlchemyQuery


# Pagination limits
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class PaginationParams:
    """Pagination parameters from query string."""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


def paginated(items: list, total: int, pagination: PaginationParams) -> dict[str, Any]:
    """Standard paginated response: ``{data, pagination: {page, limit, total, pages}}``."""
    return {
        "data": items,
        "pagination": {
            "page": pagination.page,
            "limit": pagination.limit,
            "total": total,
            "pages": page_count(total, pagination.limit),
        },
    }


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        (items, total_count)
    """
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.limit).all()
    return items, total
