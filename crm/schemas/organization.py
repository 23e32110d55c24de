"""Organization and user schemas for the admin surface."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from crm.db.enums import Role
from crm.schemas.common import PaginationMeta


# =============================================================================
# Organizations
# =============================================================================

class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    industry: str | None = Field(None, max_length=100)
    website: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None


class OrganizationUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    industry: str | None = Field(None, max_length=100)
    website: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None


class OrganizationRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    industry: str | None
    website: str | None
    phone: str | None
    address: str | None
    created_at: datetime
    updated_at: datetime


class OrganizationListResponse(BaseModel):
    data: list[OrganizationRead]
    pagination: PaginationMeta


# =============================================================================
# Users
# =============================================================================

class UserCreate(BaseModel):
    organization_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    role: Role = Role.USER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class UserUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, min_length=3, max_length=255)
    role: Role | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class UserRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    organization_id: UUID
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    data: list[UserRead]
    pagination: PaginationMeta
