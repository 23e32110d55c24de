"""Contact, tag and smart list schemas."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from crm.db.enums import ContactStatus, LeadStatus
from crm.schemas.common import PaginationMeta


ContactSortField = Literal["created_at", "updated_at", "first_name", "last_name", "email", "status", "source"]


# =============================================================================
# Contacts
# =============================================================================

class ContactBase(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)
    source: str | None = Field(None, max_length=100)
    lead_status: LeadStatus | None = None


class ContactCreate(ContactBase):
    """Schema for creating a contact."""
    status: ContactStatus = ContactStatus.LEAD
    custom_fields: dict[str, Any] | None = None


class ContactUpdate(ContactBase):
    """
    Schema for updating a contact.

    ``custom_fields`` is merged into the stored object; a key set to null is
    removed.
    """
    status: ContactStatus | None = None
    custom_fields: dict[str, Any] | None = None


class ContactRead(ContactBase):
    model_config = {"from_attributes": True}

    id: UUID
    organization_id: UUID
    status: str
    lead_status: str | None
    custom_fields: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime


class ContactListResponse(BaseModel):
    data: list[ContactRead]
    pagination: PaginationMeta


class ContactStatusCount(BaseModel):
    status: str
    count: int


# =============================================================================
# Tags
# =============================================================================

class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class TagUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class TagRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    color: str
    created_at: datetime


class ContactTagAdd(BaseModel):
    tag_id: UUID


# =============================================================================
# Smart Lists
# =============================================================================

class SmartListCriteria(BaseModel):
    """Filter stored on a smart list. All present criteria must match."""
    model_config = {"extra": "forbid"}

    tags: list[UUID] = Field(default_factory=list)
    status: ContactStatus | None = None
    source: str | None = None
    search: str | None = Field(None, max_length=255)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class SmartListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    filter_criteria: SmartListCriteria = Field(default_factory=SmartListCriteria)


class SmartListUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    filter_criteria: SmartListCriteria | None = None


class SmartListRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    description: str | None
    filter_criteria: SmartListCriteria
    created_at: datetime
    updated_at: datetime
