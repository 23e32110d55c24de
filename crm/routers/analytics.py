"""
Analytics endpoints.

Reporting views for the current organization plus event ingestion. The
dashboard answers its report families at the top level; every other view
answers ``{"stats": ...}``. Date filters are ISO dates given as a pair.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.deps import get_db, get_optional_user_id, get_org_scope
from crm.core.exceptions import ValidationError
from crm.core.rate_limit import limiter
from crm.schemas.analytics import DashboardResponse, EventTrack, EventTrackResponse, StatsResponse
from crm.services import analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("", response_model=DashboardResponse)
def dashboard(
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Every report family in one payload."""
    return analytics_service.get_dashboard(db, org_id, start_date, end_date, period)


@router.post("", response_model=EventTrackResponse)
@limiter.limit(f"{settings.RATE_LIMIT_TRACKING}/minute")
def track_event(
    request: Request,
    data: EventTrack,
    org_id: UUID = Depends(get_org_scope),
    user_id: UUID | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    event = analytics_service.track_event(
        db,
        org_id,
        user_id,
        data.event_type,
        event_data=data.event_data,
        source=data.source,
        campaign=data.campaign,
    )
    db.commit()
    return {"message": "Event tracked successfully", "event": event}


@router.get("/contacts", response_model=StatsResponse)
def contact_stats(
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
    source: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    stats = analytics_service.get_contact_stats(db, org_id, start_date, end_date, period, source)
    return {"stats": stats}


@router.get("/deals", response_model=StatsResponse)
def deal_stats(
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
    pipeline_id: UUID | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    stats = analytics_service.get_deal_stats(db, org_id, start_date, end_date, period, pipeline_id)
    return {"stats": stats}


@router.get("/email-campaigns", response_model=StatsResponse)
def email_campaign_stats(
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    stats = analytics_service.get_email_campaign_stats(db, org_id, start_date, end_date, period)
    return {"stats": stats}


@router.get("/funnel", response_model=StatsResponse)
def funnel_stats(
    funnel_name: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """``funnel_name=marketing`` for the lead funnel; anything else uses pipeline stages."""
    stats = analytics_service.get_funnel_stats(db, org_id, funnel_name, start_date, end_date)
    return {"stats": stats}


@router.get("/roi", response_model=StatsResponse)
def roi_stats(
    start_date: str | None = None,
    end_date: str | None = None,
    channel: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    stats = analytics_service.get_roi_stats(db, org_id, start_date, end_date, channel)
    return {"stats": stats}


@router.get("/organization", response_model=StatsResponse)
def organization_event_stats(
    start_date: str | None = None,
    end_date: str | None = None,
    event_types: list[str] | None = Query(None),
    group_by: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Tracked event counts grouped by time, source, campaign or event type."""
    stats = analytics_service.get_organization_event_stats(
        db, org_id, start_date, end_date, event_types, group_by
    )
    return {"stats": stats}


@router.get("/user-activity", response_model=StatsResponse)
def user_activity(
    user_id: UUID | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    group_by: str | None = None,
    session_user_id: UUID | None = Depends(get_optional_user_id),
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Activity of the calling user, or of ``user_id`` when given."""
    user_id = user_id or session_user_id
    if not user_id:
        raise ValidationError("User ID required", field="user_id")
    stats = analytics_service.get_user_activity(db, user_id, org_id, start_date, end_date, group_by)
    return {"stats": stats}
