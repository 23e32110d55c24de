"""Shared response schemas."""

from pydantic import BaseModel


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class MessageResponse(BaseModel):
    message: str
