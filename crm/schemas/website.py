"""Website and page schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from crm.schemas.common import PaginationMeta

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# =============================================================================
# Pages
# =============================================================================

class PageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=SLUG_PATTERN)
    content: dict[str, Any] = Field(default_factory=dict)


class PageUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    content: dict[str, Any] | None = None


class PageRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    website_id: UUID
    title: str
    slug: str
    content: dict[str, Any]
    is_published: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Websites
# =============================================================================

class WebsiteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: str | None = Field(None, max_length=255)


class WebsiteUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    domain: str | None = Field(None, max_length=255)


class WebsiteRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    domain: str | None
    created_at: datetime
    updated_at: datetime


class WebsiteListResponse(BaseModel):
    data: list[WebsiteRead]
    pagination: PaginationMeta
