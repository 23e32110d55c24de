"""Analytics request/response schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class EventTrack(BaseModel):
    """
    Body of POST /analytics.

    ``event_type`` is optional here so a missing value yields the
    "Event type is required" error rather than a generic validation error.
    """
    event_type: str | None = Field(None, max_length=100)
    event_data: dict[str, Any] | None = None
    source: str | None = Field(None, max_length=100)
    campaign: str | None = Field(None, max_length=255)


class EventRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    user_id: str | None
    event_type: str
    event_data: dict[str, Any]
    source: str | None
    campaign: str | None
    timestamp: datetime


class EventTrackResponse(BaseModel):
    message: str
    event: EventRead


class StatsResponse(BaseModel):
    """Entity analytics views are returned under a ``stats`` key."""
    stats: Any


class DashboardResponse(BaseModel):
    """Every report family side by side, keyed as the dashboard client expects."""
    contacts: dict[str, Any]
    deals: dict[str, Any]
    emailCampaigns: dict[str, Any]
    funnel: dict[str, Any]
    roi: dict[str, Any]
    lastUpdated: str
