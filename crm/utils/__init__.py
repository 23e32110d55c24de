"""Utility modules."""

from crm.utils.pagination import (
    PaginationParams,
    paginate_query,
    paginated,
)

__all__ = [
    "PaginationParams",
    "paginate_query",
    "paginated",
]
