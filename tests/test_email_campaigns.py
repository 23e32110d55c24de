"""Tests for email campaign lifecycle, recipients and engagement counters."""

from datetime import datetime, timedelta, timezone

import pytest

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import insert_row
from crm.db.enums import RecipientStatus
from crm.db.models import Contact, EmailCampaignEvent
from crm.schemas.campaign import EmailCampaignCreate, EmailCampaignUpdate
from crm.services import email_campaign_service as campaigns


@pytest.fixture
def contacts(db, test_org):
    return [
        insert_row(db, Contact, {"organization_id": test_org.id, "email": f"c{i}@example.com"})
        for i in range(4)
    ]


@pytest.fixture
def campaign(db, test_org):
    return campaigns.create_campaign(db, test_org.id, EmailCampaignCreate(
        name="Launch", subject="We are live", content="<p>Hello</p>",
    ))


@pytest.fixture
def sent_campaign(db, test_org, campaign, contacts):
    return campaigns.send_campaign(db, campaign.id, test_org.id, [c.id for c in contacts])


# =============================================================================
# Lifecycle
# =============================================================================

def test_new_campaign_is_draft(campaign):
    assert campaign.status == "draft"
    assert campaign.recipients_count == 0


def test_schedule_then_cancel(db, test_org, campaign):
    when = datetime.now(timezone.utc) + timedelta(days=1)
    scheduled = campaigns.schedule_campaign(db, campaign.id, test_org.id, when)
    assert scheduled.status == "scheduled"

    cancelled = campaigns.cancel_scheduled_campaign(db, campaign.id, test_org.id)
    assert cancelled.status == "draft"
    assert cancelled.scheduled_at is None


def test_cancel_requires_scheduled(db, test_org, campaign):
    with pytest.raises(ValidationError, match="Only scheduled campaigns can be cancelled"):
        campaigns.cancel_scheduled_campaign(db, campaign.id, test_org.id)


def test_send_creates_recipients(db, test_org, sent_campaign, contacts):
    assert sent_campaign.status == "sent"
    assert sent_campaign.sent_at is not None
    assert sent_campaign.recipients_count == 4

    result = campaigns.list_recipients(db, sent_campaign.id, test_org.id)
    assert result["pagination"]["total"] == 4
    assert {r.status for r in result["data"]} == {"sent"}


def test_send_deduplicates_recipients(db, test_org, campaign, contacts):
    sent = campaigns.send_campaign(db, campaign.id, test_org.id, [contacts[0].id, contacts[0].id])
    assert sent.recipients_count == 1


def test_send_rejects_foreign_contacts(db, test_org, other_org, campaign):
    outsider = insert_row(db, Contact, {"organization_id": other_org.id, "email": "x@example.com"})
    with pytest.raises(ValidationError) as exc_info:
        campaigns.send_campaign(db, campaign.id, test_org.id, [outsider.id])
    assert exc_info.value.message == "Recipients not found"
    assert exc_info.value.details == [str(outsider.id)]


def test_sent_campaign_is_frozen(db, test_org, sent_campaign, contacts):
    with pytest.raises(ValidationError, match="Campaign has already been sent"):
        campaigns.send_campaign(db, sent_campaign.id, test_org.id, [contacts[0].id])
    with pytest.raises(ValidationError, match="Cannot update a sent campaign"):
        campaigns.update_campaign(db, sent_campaign.id, test_org.id, EmailCampaignUpdate(name="Renamed"))
    with pytest.raises(ValidationError, match="Cannot delete a sent campaign"):
        campaigns.delete_campaign(db, sent_campaign.id, test_org.id)
    with pytest.raises(ValidationError, match="Cannot schedule a sent campaign"):
        campaigns.schedule_campaign(db, sent_campaign.id, test_org.id, datetime.now(timezone.utc))


def test_campaign_is_invisible_to_other_org(db, other_org, campaign):
    with pytest.raises(NotFoundError):
        campaigns.get_campaign(db, campaign.id, other_org.id)


# =============================================================================
# Statistics
# =============================================================================

def test_statistics_without_recipients(db, test_org, campaign):
    stats = campaigns.get_campaign_statistics(db, campaign.id, test_org.id)
    assert stats["total"] == 0
    assert stats["open_rate"] == 0
    assert stats["click_rate"] == 0
    assert set(stats["by_status"]) == {s.value for s in RecipientStatus}


def test_open_rate_after_one_open(db, test_org, sent_campaign, contacts):
    campaigns.update_recipient_status(
        db, sent_campaign.id, contacts[0].id, test_org.id, RecipientStatus.OPENED
    )

    stats = campaigns.get_campaign_statistics(db, sent_campaign.id, test_org.id)
    assert stats["open_rate"] == 25.0
    assert stats["click_rate"] == 0
    assert stats["by_status"]["opened"] == 1
    assert stats["by_status"]["sent"] == 3


def test_counters_bump_once_per_recipient(db, test_org, sent_campaign, contacts):
    contact_id = contacts[0].id
    for _ in range(2):
        campaigns.update_recipient_status(
            db, sent_campaign.id, contact_id, test_org.id, RecipientStatus.OPENED
        )
    campaigns.update_recipient_status(
        db, sent_campaign.id, contact_id, test_org.id, RecipientStatus.CLICKED
    )

    assert sent_campaign.opened_count == 1
    assert sent_campaign.clicked_count == 1


def test_click_without_open_counts_as_open(db, test_org, sent_campaign, contacts):
    recipient = campaigns.update_recipient_status(
        db, sent_campaign.id, contacts[1].id, test_org.id, RecipientStatus.CLICKED
    )

    assert recipient.opened_at is not None
    assert recipient.clicked_at is not None
    assert sent_campaign.opened_count == 1
    assert sent_campaign.clicked_count == 1


def test_bounce_counted_on_status_change(db, test_org, sent_campaign, contacts):
    for _ in range(2):
        campaigns.update_recipient_status(
            db, sent_campaign.id, contacts[2].id, test_org.id, RecipientStatus.BOUNCED
        )
    assert sent_campaign.bounced_count == 1


def test_bounce_and_unsubscribe_counted_once_per_recipient(db, test_org, sent_campaign, contacts):
    contact_id = contacts[3].id
    for status in (RecipientStatus.BOUNCED, RecipientStatus.SENT, RecipientStatus.BOUNCED):
        recipient = campaigns.update_recipient_status(db, sent_campaign.id, contact_id, test_org.id, status)
    for status in (RecipientStatus.UNSUBSCRIBED, RecipientStatus.SENT, RecipientStatus.UNSUBSCRIBED):
        recipient = campaigns.update_recipient_status(db, sent_campaign.id, contact_id, test_org.id, status)

    assert recipient.bounced_at is not None
    assert recipient.unsubscribed_at is not None
    assert sent_campaign.bounced_count == 1
    assert sent_campaign.unsubscribed_count == 1


def test_open_is_logged_as_event(db, test_org, sent_campaign, contacts):
    campaigns.update_recipient_status(
        db, sent_campaign.id, contacts[0].id, test_org.id,
        RecipientStatus.OPENED, user_agent_data={"device": "mobile"},
    )

    event = db.query(EmailCampaignEvent).one()
    assert event.event_type == "open"
    assert event.user_agent_data == {"device": "mobile"}
    assert event.organization_id == test_org.id


def test_unknown_recipient(db, test_org, sent_campaign):
    stranger = insert_row(db, Contact, {"organization_id": test_org.id})
    with pytest.raises(NotFoundError):
        campaigns.update_recipient_status(
            db, sent_campaign.id, stranger.id, test_org.id, RecipientStatus.OPENED
        )


# =============================================================================
# API
# =============================================================================

async def test_actions_endpoint(authed_client, contacts):
    created = (await authed_client.post("/api/email-campaigns", json={
        "name": "Newsletter", "subject": "News", "content": "Body",
    })).json()

    response = await authed_client.post(
        f"/api/email-campaigns/{created['id']}/actions",
        json={"action": "send", "recipient_ids": [str(c.id) for c in contacts[:2]]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Campaign sent successfully"
    assert body["campaign"]["recipients_count"] == 2


async def test_send_action_requires_recipients(authed_client):
    created = (await authed_client.post("/api/email-campaigns", json={
        "name": "Newsletter", "subject": "News", "content": "Body",
    })).json()

    response = await authed_client.post(
        f"/api/email-campaigns/{created['id']}/actions", json={"action": "send"}
    )
    assert response.status_code == 400
