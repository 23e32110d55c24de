"""Pydantic schemas for API request/response models."""

from crm.schemas.auth import TokenPayload, UserSession
from crm.schemas.common import MessageResponse, PaginationMeta

__all__ = [
    "MessageResponse",
    "PaginationMeta",
    "TokenPayload",
    "UserSession",
]
