"""Pipeline, stage and deal schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from crm.db.enums import DealStatus
from crm.schemas.common import PaginationMeta


# =============================================================================
# Stages
# =============================================================================

class StageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class StageUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class StageReorder(BaseModel):
    """Complete ordering of a pipeline's stage ids."""
    stage_ids: list[UUID] = Field(..., min_length=1)


class StageRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    pipeline_id: UUID
    name: str
    description: str | None
    position: int


# =============================================================================
# Pipelines
# =============================================================================

class PipelineCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    stages: list[StageCreate] = Field(default_factory=list)


class PipelineUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class PipelineRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    description: str | None
    stages: list[StageRead]
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Deals
# =============================================================================

class DealCreate(BaseModel):
    pipeline_id: UUID
    stage_id: UUID
    contact_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    value: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=3)
    expected_close_date: date | None = None
    status: DealStatus = DealStatus.OPEN


class DealUpdate(BaseModel):
    pipeline_id: UUID | None = None
    stage_id: UUID | None = None
    contact_id: UUID | None = None
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    value: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    expected_close_date: date | None = None
    status: DealStatus | None = None


class DealRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    pipeline_id: UUID
    stage_id: UUID
    contact_id: UUID | None
    title: str
    description: str | None
    value: Decimal | None
    currency: str
    expected_close_date: date | None
    status: str
    created_at: datetime
    updated_at: datetime


class DealListResponse(BaseModel):
    data: list[DealRead]
    pagination: PaginationMeta
