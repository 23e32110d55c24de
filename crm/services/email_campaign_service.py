"""Email campaign service - drafts, scheduling, send fan-out and recipient tracking.

Status machine: draft → scheduled → sent, with scheduled → draft on cancel.
Once sent a campaign is immutable apart from its engagement counters.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.enums import CampaignStatus, RecipientStatus
from crm.db.models import CampaignRecipient, Contact, EmailCampaign, EmailCampaignEvent
from crm.db.types import utcnow
from crm.schemas.campaign import EmailCampaignCreate, EmailCampaignUpdate

logger = logging.getLogger(__name__)

# Terminal recipient status → (recipient stamp, campaign counter bumped when the stamp is first set)
_TERMINAL_STAMPS = {
    RecipientStatus.BOUNCED: ("bounced_at", "bounced_count"),
    RecipientStatus.UNSUBSCRIBED: ("unsubscribed_at", "unsubscribed_count"),
}


def _rate(part: int, whole: int) -> float:
    return round((part / whole * 100) if whole > 0 else 0, 1)


# =============================================================================
# CRUD Operations
# =============================================================================

def create_campaign(db: Session, org_id: UUID, data: EmailCampaignCreate) -> EmailCampaign:
    """Create a new campaign as a draft."""
    values = data.model_dump()
    values["organization_id"] = org_id
    values["status"] = CampaignStatus.DRAFT.value
    return insert_row(db, EmailCampaign, values)


def get_campaign(db: Session, campaign_id: UUID, org_id: UUID) -> EmailCampaign:
    campaign = db.query(EmailCampaign).filter(
        EmailCampaign.id == campaign_id,
        EmailCampaign.organization_id == org_id,
    ).first()
    if not campaign:
        raise NotFoundError("Email campaign", campaign_id)
    return campaign


def list_campaigns(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 20,
    status: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    filters: dict = {"organization_id": org_id}
    if status:
        filters["status"] = status
    return paginate(db, EmailCampaign, filters, page=page, limit=limit, order_by=sort_by, order=sort_dir)


def update_campaign(db: Session, campaign_id: UUID, org_id: UUID, data: EmailCampaignUpdate) -> EmailCampaign:
    campaign = get_campaign(db, campaign_id, org_id)
    if campaign.status == CampaignStatus.SENT.value:
        raise ValidationError("Cannot update a sent campaign")
    return update_row(db, campaign, data.model_dump(exclude_unset=True))


def delete_campaign(db: Session, campaign_id: UUID, org_id: UUID) -> None:
    campaign = get_campaign(db, campaign_id, org_id)
    if campaign.status == CampaignStatus.SENT.value:
        raise ValidationError("Cannot delete a sent campaign")
    delete_row(db, campaign)


# =============================================================================
# Status Transitions
# =============================================================================

def schedule_campaign(db: Session, campaign_id: UUID, org_id: UUID, scheduled_at: datetime) -> EmailCampaign:
    campaign = get_campaign(db, campaign_id, org_id)
    if campaign.status == CampaignStatus.SENT.value:
        raise ValidationError("Cannot schedule a sent campaign")
    return update_row(db, campaign, {
        "status": CampaignStatus.SCHEDULED.value,
        "scheduled_at": scheduled_at,
    })


def cancel_scheduled_campaign(db: Session, campaign_id: UUID, org_id: UUID) -> EmailCampaign:
    """Return a scheduled campaign to draft."""
    campaign = get_campaign(db, campaign_id, org_id)
    if campaign.status != CampaignStatus.SCHEDULED.value:
        raise ValidationError("Only scheduled campaigns can be cancelled")
    return update_row(db, campaign, {
        "status": CampaignStatus.DRAFT.value,
        "scheduled_at": None,
    })


def send_campaign(db: Session, campaign_id: UUID, org_id: UUID, recipient_ids: list[UUID]) -> EmailCampaign:
    """
    Mark the campaign sent and create one recipient row per contact.

    Every recipient must be a contact of the same org. Delivery itself is
    handled by the mail provider integration, outside this service.
    """
    campaign = get_campaign(db, campaign_id, org_id)
    if campaign.status == CampaignStatus.SENT.value:
        raise ValidationError("Campaign has already been sent")

    unique_ids = list(dict.fromkeys(recipient_ids))
    if not unique_ids:
        raise ValidationError("At least one recipient is required", field="recipient_ids")

    found = {
        row.id for row in db.query(Contact.id).filter(
            Contact.id.in_(unique_ids),
            Contact.organization_id == org_id,
        )
    }
    missing = [str(cid) for cid in unique_ids if cid not in found]
    if missing:
        raise ValidationError("Recipients not found", field="recipient_ids", details=missing)

    now = utcnow()
    for contact_id in unique_ids:
        insert_row(db, CampaignRecipient, {
            "campaign_id": campaign.id,
            "contact_id": contact_id,
            "status": RecipientStatus.SENT.value,
            "sent_at": now,
        })

    logger.info("Campaign %s sent to %d recipients", campaign.id, len(unique_ids))
    return update_row(db, campaign, {
        "status": CampaignStatus.SENT.value,
        "sent_at": now,
        "recipients_count": len(unique_ids),
    })


# =============================================================================
# Recipients
# =============================================================================

def list_recipients(
    db: Session,
    campaign_id: UUID,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 50,
    status: str | None = None,
) -> dict:
    campaign = get_campaign(db, campaign_id, org_id)
    filters: dict = {"campaign_id": campaign.id}
    if status:
        filters["status"] = status
    return paginate(db, CampaignRecipient, filters, page=page, limit=limit, order_by="created_at", order="ASC")


def get_campaign_statistics(db: Session, campaign_id: UUID, org_id: UUID) -> dict[str, Any]:
    """Recipient counts by status plus open and click rates."""
    campaign = get_campaign(db, campaign_id, org_id)
    rows = db.query(
        CampaignRecipient.status,
        func.count(CampaignRecipient.id).label("count"),
    ).filter(
        CampaignRecipient.campaign_id == campaign.id
    ).group_by(CampaignRecipient.status).all()

    by_status = {s.value: 0 for s in RecipientStatus}
    for row in rows:
        by_status[row.status] = row.count
    total = sum(by_status.values())

    return {
        "total": total,
        "by_status": by_status,
        "open_rate": _rate(campaign.opened_count, campaign.recipients_count),
        "click_rate": _rate(campaign.clicked_count, campaign.opened_count),
    }


def update_recipient_status(
    db: Session,
    campaign_id: UUID,
    contact_id: UUID,
    org_id: UUID,
    status: RecipientStatus,
    user_agent_data: dict[str, Any] | None = None,
) -> CampaignRecipient:
    """
    Record a delivery or engagement status for one recipient.

    Each engagement or terminal status is stamped on the recipient the first
    time it is reached, and only then bumps the matching campaign counter.
    Opens and clicks are also logged as campaign events.
    """
    campaign = get_campaign(db, campaign_id, org_id)
    recipient = db.query(CampaignRecipient).filter(
        CampaignRecipient.campaign_id == campaign.id,
        CampaignRecipient.contact_id == contact_id,
    ).first()
    if not recipient:
        raise NotFoundError("Recipient", contact_id)

    now = utcnow()
    values: dict[str, Any] = {"status": status.value}
    counters: dict[str, int] = {}

    first_open = recipient.opened_at is None and status in (RecipientStatus.OPENED, RecipientStatus.CLICKED)
    if first_open:
        values["opened_at"] = now
        counters["opened_count"] = campaign.opened_count + 1
    if status == RecipientStatus.CLICKED and recipient.clicked_at is None:
        values["clicked_at"] = now
        counters["clicked_count"] = campaign.clicked_count + 1
    if status in _TERMINAL_STAMPS:
        stamp, field = _TERMINAL_STAMPS[status]
        if getattr(recipient, stamp) is None:
            values[stamp] = now
            counters[field] = getattr(campaign, field) + 1

    if status in (RecipientStatus.OPENED, RecipientStatus.CLICKED):
        insert_row(db, EmailCampaignEvent, {
            "organization_id": org_id,
            "campaign_id": campaign.id,
            "contact_id": contact_id,
            "event_type": "open" if status == RecipientStatus.OPENED else "click",
            "opened_at": now,
            "user_agent_data": user_agent_data,
        })

    if counters:
        update_row(db, campaign, counters)
    return update_row(db, recipient, values)
