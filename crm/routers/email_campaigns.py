"""Email campaigns router - campaign CRUD, lifecycle actions and recipients."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.db.enums import CampaignAction
from crm.schemas.campaign import (
    CampaignActionRequest,
    CampaignActionResponse,
    CampaignStatistics,
    EmailCampaignCreate,
    EmailCampaignListResponse,
    EmailCampaignRead,
    EmailCampaignUpdate,
    RecipientListResponse,
    RecipientRead,
    RecipientStatusUpdate,
)
from crm.schemas.common import MessageResponse
from crm.services import email_campaign_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/email-campaigns", tags=["email-campaigns"])

ACTION_MESSAGES = {
    CampaignAction.SCHEDULE: "Campaign scheduled successfully",
    CampaignAction.CANCEL: "Campaign schedule cancelled",
    CampaignAction.SEND: "Campaign sent successfully",
}


@router.get("", response_model=EmailCampaignListResponse)
def list_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    status: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return email_campaign_service.list_campaigns(
        db, org_id, page=page, limit=limit, status=status, sort_by=sort_by, sort_dir=sort_dir
    )


@router.post("", response_model=EmailCampaignRead, status_code=201)
def create_campaign(
    data: EmailCampaignCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Create a campaign in draft status."""
    campaign = email_campaign_service.create_campaign(db, org_id, data)
    db.commit()
    return campaign


@router.get("/{campaign_id}", response_model=EmailCampaignRead)
def get_campaign(
    campaign_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return email_campaign_service.get_campaign(db, campaign_id, org_id)


@router.put("/{campaign_id}", response_model=EmailCampaignRead)
def update_campaign(
    campaign_id: UUID,
    data: EmailCampaignUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    campaign = email_campaign_service.update_campaign(db, campaign_id, org_id, data)
    db.commit()
    return campaign


@router.delete("/{campaign_id}", response_model=MessageResponse)
def delete_campaign(
    campaign_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    email_campaign_service.delete_campaign(db, campaign_id, org_id)
    db.commit()
    return {"message": "Email campaign deleted successfully"}


@router.post("/{campaign_id}/actions", response_model=CampaignActionResponse)
def campaign_action(
    campaign_id: UUID,
    data: CampaignActionRequest,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """
    Lifecycle transition.

    - schedule: requires scheduled_at; not allowed once sent
    - cancel: scheduled → draft
    - send: requires recipient_ids; fans out one recipient row per contact
    """
    if data.action == CampaignAction.SCHEDULE:
        campaign = email_campaign_service.schedule_campaign(db, campaign_id, org_id, data.scheduled_at)
    elif data.action == CampaignAction.CANCEL:
        campaign = email_campaign_service.cancel_scheduled_campaign(db, campaign_id, org_id)
    else:
        campaign = email_campaign_service.send_campaign(db, campaign_id, org_id, data.recipient_ids)
    db.commit()
    return {"message": ACTION_MESSAGES[data.action], "campaign": campaign}


# =============================================================================
# Recipients
# =============================================================================

@router.get("/{campaign_id}/recipients", response_model=RecipientListResponse)
def list_recipients(
    campaign_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_LIMIT),
    status: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return email_campaign_service.list_recipients(
        db, campaign_id, org_id, page=page, limit=limit, status=status
    )


@router.put("/{campaign_id}/recipients/{contact_id}", response_model=RecipientRead)
def update_recipient_status(
    campaign_id: UUID,
    contact_id: UUID,
    data: RecipientStatusUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Record a delivery event (opened, clicked, bounced, unsubscribed) for one recipient."""
    recipient = email_campaign_service.update_recipient_status(
        db, campaign_id, contact_id, org_id, data.status, data.user_agent_data
    )
    db.commit()
    return recipient


@router.get("/{campaign_id}/statistics", response_model=CampaignStatistics)
def campaign_statistics(
    campaign_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return email_campaign_service.get_campaign_statistics(db, campaign_id, org_id)
