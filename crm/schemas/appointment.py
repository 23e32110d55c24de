"""Appointment schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from crm.db.enums import AppointmentStatus
from crm.schemas.common import PaginationMeta


class AppointmentCreate(BaseModel):
    contact_id: UUID | None = None
    user_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    location: str | None = Field(None, max_length=500)
    meeting_link: str | None = Field(None, max_length=500)
    reminder_time: datetime | None = None

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AppointmentUpdate(BaseModel):
    """Partial update. Status changes go through confirm/cancel/complete."""
    contact_id: UUID | None = None
    user_id: UUID | None = None
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = Field(None, max_length=500)
    meeting_link: str | None = Field(None, max_length=500)
    reminder_time: datetime | None = None


class AppointmentRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    contact_id: UUID | None
    user_id: UUID | None
    title: str
    description: str | None
    start_time: datetime
    end_time: datetime
    location: str | None
    meeting_link: str | None
    status: AppointmentStatus
    reminder_time: datetime | None
    created_at: datetime
    updated_at: datetime


class AppointmentListResponse(BaseModel):
    data: list[AppointmentRead]
    pagination: PaginationMeta
