"""Email campaign schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from crm.db.enums import CampaignAction, RecipientStatus
from crm.schemas.common import PaginationMeta


class EmailCampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    sender_name: str | None = Field(None, max_length=255)
    sender_email: str | None = Field(None, max_length=255)
    reply_to: str | None = Field(None, max_length=255)
    template_id: str | None = Field(None, max_length=100)


class EmailCampaignUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    subject: str | None = Field(None, min_length=1, max_length=500)
    content: str | None = Field(None, min_length=1)
    sender_name: str | None = Field(None, max_length=255)
    sender_email: str | None = Field(None, max_length=255)
    reply_to: str | None = Field(None, max_length=255)
    template_id: str | None = Field(None, max_length=100)


class EmailCampaignRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    subject: str
    content: str
    sender_name: str | None
    sender_email: str | None
    reply_to: str | None
    template_id: str | None
    status: str
    scheduled_at: datetime | None
    sent_at: datetime | None
    recipients_count: int
    opened_count: int
    clicked_count: int
    bounced_count: int
    unsubscribed_count: int
    created_at: datetime
    updated_at: datetime


class EmailCampaignListResponse(BaseModel):
    data: list[EmailCampaignRead]
    pagination: PaginationMeta


class CampaignActionRequest(BaseModel):
    """Body of POST /email-campaigns/{id}/actions."""
    action: CampaignAction
    scheduled_at: datetime | None = None
    recipient_ids: list[UUID] | None = None

    @model_validator(mode="after")
    def check_action_arguments(self):
        if self.action == CampaignAction.SCHEDULE and self.scheduled_at is None:
            raise ValueError("scheduled_at is required to schedule a campaign")
        if self.action == CampaignAction.SEND and not self.recipient_ids:
            raise ValueError("recipient_ids is required to send a campaign")
        return self


class CampaignActionResponse(BaseModel):
    message: str
    campaign: EmailCampaignRead


class RecipientRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    campaign_id: UUID
    contact_id: UUID
    status: str
    sent_at: datetime | None
    opened_at: datetime | None
    clicked_at: datetime | None
    bounced_at: datetime | None = None
    unsubscribed_at: datetime | None = None


class RecipientListResponse(BaseModel):
    data: list[RecipientRead]
    pagination: PaginationMeta


class RecipientStatusUpdate(BaseModel):
    status: RecipientStatus
    # Client details of an open or click, e.g. {"device": "mobile"}
    user_agent_data: dict[str, Any] | None = None


class CampaignStatistics(BaseModel):
    total: int
    by_status: dict[str, int]
    open_rate: float
    click_rate: float
