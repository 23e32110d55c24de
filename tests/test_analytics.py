"""Tests for the analytics aggregates and their API surface."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from crm.core.deps import get_optional_user_id
from crm.core.exceptions import ValidationError
from crm.db.access import insert_row
from crm.db.models import (
    AnalyticsEvent,
    Contact,
    Deal,
    EmailCampaign,
    EmailCampaignEvent,
    MarketingCampaign,
    Pipeline,
    Stage,
)
from crm.main import app
from crm.services import analytics_service as analytics


# =============================================================================
# Helpers
# =============================================================================

def _pipeline(db, org, stage_names=("Qualified", "Proposal", "Won"), name="Sales"):
    pipeline = insert_row(db, Pipeline, {"organization_id": org.id, "name": name})
    stages = [
        insert_row(db, Stage, {"pipeline_id": pipeline.id, "name": name, "position": i})
        for i, name in enumerate(stage_names)
    ]
    return pipeline, stages


def _deal(db, org, pipeline, stage, **values):
    return insert_row(db, Deal, {
        "organization_id": org.id,
        "pipeline_id": pipeline.id,
        "stage_id": stage.id,
        "title": values.pop("title", "Deal"),
        **values,
    })


def _contact(db, org, **values):
    return insert_row(db, Contact, {"organization_id": org.id, **values})


def _event(db, org, event_type, user_id="u1", at=None, **values):
    return insert_row(db, AnalyticsEvent, {
        "organization_id": org.id,
        "user_id": user_id,
        "event_type": event_type,
        "event_data": values.pop("event_data", {}),
        "timestamp": at or datetime.now(timezone.utc),
        **values,
    })


# =============================================================================
# Date ranges
# =============================================================================

def test_no_dates_means_no_range():
    assert analytics.parse_date_range(None, None) is None


def test_dates_must_come_in_pairs():
    with pytest.raises(ValidationError, match="start_date and end_date must be provided together"):
        analytics.parse_date_range("2024-01-01", None)
    with pytest.raises(ValidationError, match="start_date and end_date must be provided together"):
        analytics.parse_date_range(None, "2024-01-31")


def test_unparseable_date():
    with pytest.raises(ValidationError, match="Invalid start_date"):
        analytics.parse_date_range("yesterday", "2024-01-31")


def test_reversed_range():
    with pytest.raises(ValidationError, match="start_date must not be after end_date"):
        analytics.parse_date_range("2024-02-01", "2024-01-01")


def test_range_span_is_capped():
    with pytest.raises(ValidationError, match="cannot exceed 30 days"):
        analytics.parse_date_range("2024-01-01", "2024-03-01", max_days=30)


def test_date_only_end_covers_whole_day():
    date_range = analytics.parse_date_range("2024-01-01", "2024-01-31")
    assert date_range.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert date_range.end.date().isoformat() == "2024-01-31"
    assert date_range.end.hour == 23


def test_timestamps_with_zulu_suffix():
    date_range = analytics.parse_date_range("2024-01-01T08:00:00Z", "2024-01-01T09:00:00Z")
    assert date_range.end - date_range.start == timedelta(hours=1)


# =============================================================================
# Funnel
# =============================================================================

def test_pipeline_funnel(db, test_org):
    pipeline, (qualified, proposal, won) = _pipeline(db, test_org)
    for _ in range(4):
        _deal(db, test_org, pipeline, qualified)
    for _ in range(2):
        _deal(db, test_org, pipeline, proposal)
    _deal(db, test_org, pipeline, won)

    stats = analytics.get_funnel_stats(db, test_org.id)

    assert stats["funnel_name"] == "default"
    assert [(s["stage"], s["count"]) for s in stats["stages"]] == [
        ("Qualified", 4), ("Proposal", 2), ("Won", 1),
    ]
    assert [s["conversion_rate"] for s in stats["stages"]] == [100, 50.0, 50.0]
    assert [s["absolute_rate"] for s in stats["stages"]] == [100.0, 50.0, 25.0]
    assert stats["conversion_summary"]["biggest_drop_stage"] == "Qualified to Proposal"
    assert stats["conversion_summary"]["overall_conversion"] == 25.0


def test_pipeline_funnel_orders_shared_positions_by_stage_name(db, test_org):
    sales, (qualified, won) = _pipeline(db, test_org, ("Qualified", "Won"))
    inbound, (lead, closed) = _pipeline(db, test_org, ("Lead", "Closed"), name="Inbound")
    for _ in range(4):
        _deal(db, test_org, inbound, lead)
    for _ in range(2):
        _deal(db, test_org, sales, qualified)
    _deal(db, test_org, inbound, closed)

    stats = analytics.get_funnel_stats(db, test_org.id)

    assert [(s["stage"], s["count"]) for s in stats["stages"]] == [
        ("Lead", 4), ("Qualified", 2), ("Closed", 1), ("Won", 0),
    ]
    assert [s["conversion_rate"] for s in stats["stages"]] == [100, 50.0, 50.0, 0]
    assert [s["absolute_rate"] for s in stats["stages"]] == [100.0, 50.0, 25.0, 0]


def test_funnel_without_pipelines(db, test_org):
    stats = analytics.get_funnel_stats(db, test_org.id)
    assert stats["stages"] == []
    assert stats["conversion_summary"] == {
        "top_entry_point": None,
        "biggest_drop_stage": None,
        "overall_conversion": 0.0,
    }


def test_marketing_funnel_with_empty_org(db, test_org):
    stats = analytics.get_funnel_stats(db, test_org.id, "marketing")

    assert [s["stage"] for s in stats["stages"]] == ["Visit", "Lead", "MQL", "SQL", "Opportunity", "Customer"]
    assert all(s["count"] == 0 for s in stats["stages"])
    assert stats["stages"][0]["conversion_rate"] == 100
    assert all(s["conversion_rate"] == 0 for s in stats["stages"][1:])
    assert all(s["absolute_rate"] == 0 for s in stats["stages"])
    assert stats["conversion_summary"]["overall_conversion"] == 0.0


def test_marketing_funnel_counts(db, test_org, other_org):
    for user in ("a", "b", "c", "d"):
        _event(db, test_org, "page_view", user_id=user)
    _event(db, test_org, "page_view", user_id="a")
    _event(db, other_org, "page_view", user_id="z")

    _contact(db, test_org, source="google", lead_status="marketing_qualified")
    _contact(db, test_org, source="google", lead_status="sales_qualified")

    stats = analytics.get_funnel_stats(db, test_org.id, "marketing")
    counts = {s["stage"]: s["count"] for s in stats["stages"]}

    assert counts == {"Visit": 4, "Lead": 2, "MQL": 1, "SQL": 1, "Opportunity": 0, "Customer": 0}
    assert stats["stages"][1]["conversion_rate"] == 50.0
    assert stats["conversion_summary"]["top_entry_point"] == "google"
    assert stats["conversion_summary"]["biggest_drop_stage"] == "Visit to Lead"


def test_marketing_funnel_stage_after_empty_stage(db, test_org):
    _contact(db, test_org, source="ads", lead_status="sales_qualified")

    stats = analytics.get_funnel_stats(db, test_org.id, "marketing")
    stages = {s["stage"]: s for s in stats["stages"]}

    assert stages["MQL"]["count"] == 0
    assert stages["SQL"]["count"] == 1
    assert stages["SQL"]["conversion_rate"] == 0
    assert stages["Lead"]["conversion_rate"] == 0


def test_funnel_validates_dates(db, test_org):
    with pytest.raises(ValidationError):
        analytics.get_funnel_stats(db, test_org.id, None, "2024-01-01", None)


# =============================================================================
# Deals
# =============================================================================

def test_deal_velocity(db, test_org):
    pipeline, stages = _pipeline(db, test_org)
    closed = datetime.now(timezone.utc) - timedelta(days=1)
    _deal(
        db, test_org, pipeline, stages[2],
        status="won", value=Decimal("1000.00"),
        created_at=closed - timedelta(days=5), updated_at=closed,
    )
    _deal(db, test_org, pipeline, stages[0], status="open", value=Decimal("250.00"))

    stats = analytics.get_deal_stats(db, test_org.id)
    velocity = stats["velocity"]

    assert velocity["won_deals_count"] == 1
    assert velocity["total_won_value"] == 1000.0
    assert velocity["avg_days_to_close"] == pytest.approx(5.0)
    assert velocity["sales_velocity_per_day"] == pytest.approx(200.0)

    summary = stats["summary"]
    assert summary["total_deals"] == 2
    assert summary["open_deals_value"] == 250.0
    assert summary["win_rate"] == 100.0


def test_deal_velocity_ignores_old_wins(db, test_org):
    pipeline, stages = _pipeline(db, test_org)
    long_ago = datetime.now(timezone.utc) - timedelta(days=200)
    _deal(
        db, test_org, pipeline, stages[2],
        status="won", value=Decimal("500.00"),
        created_at=long_ago - timedelta(days=10), updated_at=long_ago,
    )

    velocity = analytics.get_deal_stats(db, test_org.id)["velocity"]
    assert velocity["won_deals_count"] == 0
    assert velocity["total_won_value"] == 0
    assert velocity["sales_velocity_per_day"] == 0


def test_deal_stats_empty_org(db, test_org):
    stats = analytics.get_deal_stats(db, test_org.id)
    assert stats["timeline"] == []
    assert stats["pipelines"] == []
    assert stats["summary"] == {
        "total_deals": 0,
        "open_deals_value": 0,
        "win_rate": 0,
        "avg_deal_cycle": 0,
    }


def test_deal_timeline_by_period(db, test_org):
    pipeline, stages = _pipeline(db, test_org)
    _deal(db, test_org, pipeline, stages[0], created_at=datetime(2024, 1, 15, tzinfo=timezone.utc))
    _deal(db, test_org, pipeline, stages[0], created_at=datetime(2024, 1, 20, tzinfo=timezone.utc))
    _deal(db, test_org, pipeline, stages[0], created_at=datetime(2024, 2, 3, tzinfo=timezone.utc))

    timeline = analytics.get_deal_stats(db, test_org.id, "2024-01-01", "2024-12-31", "month")["timeline"]
    assert [(row["time_period"], row["new_deals"]) for row in timeline] == [("2024-01", 2), ("2024-02", 1)]


# =============================================================================
# Marketing ROI
# =============================================================================

def test_roi_does_not_multiply_spend(db, test_org):
    """Two campaigns and three contacts on one channel: spend counted once."""
    for cost in ("200.00", "300.00"):
        insert_row(db, MarketingCampaign, {
            "organization_id": test_org.id, "name": f"Ads {cost}", "channel": "google", "cost": Decimal(cost),
        })
    buyer = _contact(db, test_org, source="google")
    prospect = _contact(db, test_org, source="google")
    _contact(db, test_org, source="google")

    pipeline, stages = _pipeline(db, test_org)
    _deal(db, test_org, pipeline, stages[2], contact_id=buyer.id, status="won", value=Decimal("1000.00"))
    _deal(db, test_org, pipeline, stages[0], contact_id=prospect.id, status="open", value=Decimal("400.00"))

    stats = analytics.get_roi_stats(db, test_org.id)
    (channel,) = stats["channels"]

    assert channel["channel"] == "google"
    assert channel["total_cost"] == 500.0
    assert channel["leads_generated"] == 3
    assert channel["opportunities_created"] == 2
    assert channel["revenue_generated"] == 1000.0
    assert channel["roi"] == 2.0
    assert channel["cost_per_lead"] == pytest.approx(166.67)
    assert channel["cost_per_opportunity"] == 250.0

    assert stats["summary"] == {
        "total_marketing_spend": 500.0,
        "total_revenue_attributed": 1000.0,
        "overall_roi": 2.0,
        "best_performing_channel": "google",
    }


def test_roi_channel_without_leads(db, test_org):
    insert_row(db, MarketingCampaign, {
        "organization_id": test_org.id, "name": "Billboard", "channel": "outdoor", "cost": Decimal("100.00"),
    })

    (channel,) = analytics.get_roi_stats(db, test_org.id)["channels"]
    assert channel["leads_generated"] == 0
    assert channel["roi"] == 0
    assert channel["cost_per_lead"] == 0


def test_roi_empty_org(db, test_org):
    stats = analytics.get_roi_stats(db, test_org.id)
    assert stats["channels"] == []
    assert stats["summary"]["overall_roi"] == 0
    assert stats["summary"]["best_performing_channel"] is None


# =============================================================================
# Contacts
# =============================================================================

def test_contact_stats(db, test_org, other_org):
    _contact(db, test_org, source="google", status="active")
    _contact(db, test_org, source="google")
    _contact(db, test_org, source="referral")
    _contact(db, other_org, source="google")

    stats = analytics.get_contact_stats(db, test_org.id)

    sources = {row["source"]: row for row in stats["sources"]}
    assert sources["google"]["count"] == 2
    assert sources["google"]["percentage"] == pytest.approx(66.7)
    assert sources["referral"]["percentage"] == pytest.approx(33.3)

    summary = stats["summary"]
    assert summary["total_contacts"] == 3
    assert summary["active_contacts"] == 1
    assert summary["new_contacts_30d"] == 3
    assert summary["conversion_rate"] == 0


# =============================================================================
# Email campaigns
# =============================================================================

def test_email_campaign_stats(db, test_org):
    sent_at = datetime(2024, 3, 10, 9, tzinfo=timezone.utc)
    campaign = insert_row(db, EmailCampaign, {
        "organization_id": test_org.id,
        "name": "March", "subject": "Spring sale", "content": "Body",
        "status": "sent", "sent_at": sent_at,
        "recipients_count": 4, "opened_count": 1, "clicked_count": 0,
    })
    insert_row(db, EmailCampaign, {
        "organization_id": test_org.id, "name": "Draft", "subject": "Soon", "content": "Body",
    })
    insert_row(db, EmailCampaignEvent, {
        "organization_id": test_org.id,
        "campaign_id": campaign.id,
        "event_type": "open",
        "opened_at": datetime(2024, 3, 10, 14, 5, tzinfo=timezone.utc),
        "user_agent_data": {"device": "mobile"},
    })

    stats = analytics.get_email_campaign_stats(db, test_org.id)

    (bucket,) = stats["timeline"]
    assert bucket["time_period"] == "2024-03"
    assert bucket["open_rate"] == 25.0
    assert bucket["click_through_rate"] == 0.0

    rates = {row["name"]: row for row in stats["campaigns"]}
    assert rates["March"]["open_rate"] == 25.0
    assert rates["Draft"]["open_rate"] == 0

    assert stats["engagement_times"] == [{"hour_of_day": 14, "open_count": 1}]
    assert stats["devices"] == [{"device": "mobile", "count": 1, "percentage": 100.0}]

    summary = stats["summary"]
    assert summary["total_campaigns"] == 2
    assert summary["avg_open_rate"] == 25.0
    # Below the recipient floor for a meaningful best subject
    assert summary["top_performing_subject"] is None


# =============================================================================
# Tracked events
# =============================================================================

def test_event_stats_grouped_by_type(db, test_org):
    start = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    _event(db, test_org, "page_view", at=start)
    _event(db, test_org, "page_view", at=start + timedelta(seconds=60))
    _event(db, test_org, "click", at=start + timedelta(seconds=180))

    rows = analytics.get_organization_event_stats(db, test_org.id)
    by_type = {row["event_type"]: row for row in rows}

    assert rows[0]["event_type"] == "page_view"
    assert by_type["page_view"]["event_count"] == 2
    assert by_type["page_view"]["unique_users"] == 1
    # Gaps of 60s and 120s to each user's next event
    assert by_type["page_view"]["avg_time_between_events"] == pytest.approx(90, abs=0.5)
    assert by_type["click"]["avg_time_between_events"] is None


def test_event_stats_filters_types_and_groups_by_day(db, test_org):
    day = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    _event(db, test_org, "page_view", at=day)
    _event(db, test_org, "page_view", at=day + timedelta(days=1))
    _event(db, test_org, "signup", at=day)

    rows = analytics.get_organization_event_stats(
        db, test_org.id, event_types=["page_view"], group_by="time"
    )
    assert [(row["day"], row["event_count"]) for row in rows] == [("2024-05-01", 1), ("2024-05-02", 1)]


def test_user_activity(db, test_org):
    _event(db, test_org, "page_view", user_id="42", source="ads")
    _event(db, test_org, "page_view", user_id="42", source="ads")
    _event(db, test_org, "signup", user_id="42", source="organic")
    _event(db, test_org, "page_view", user_id="7")

    rows = analytics.get_user_activity(db, "42", test_org.id)
    assert [(row["event_type"], row["count"]) for row in rows] == [("page_view", 2), ("signup", 1)]

    rows = analytics.get_user_activity(db, "42", test_org.id, group_by="source")
    assert {(row["source"], row["event_type"]): row["count"] for row in rows} == {
        ("ads", "page_view"): 2,
        ("organic", "signup"): 1,
    }


def test_track_event_requires_type(db, test_org):
    with pytest.raises(ValidationError, match="Event type is required"):
        analytics.track_event(db, test_org.id, None, "")


# =============================================================================
# API
# =============================================================================

async def test_dashboard(authed_client):
    response = await authed_client.get("/api/analytics")
    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"contacts", "deals", "emailCampaigns", "funnel", "roi", "lastUpdated"}
    assert body["funnel"]["funnel_name"] == "default"


async def test_dashboard_rejects_half_range(authed_client):
    response = await authed_client.get("/api/analytics", params={"start_date": "2024-01-01"})
    assert response.status_code == 400
    assert response.json()["error"] == "start_date and end_date must be provided together"


async def test_track_event_via_api(authed_client, test_auth):
    response = await authed_client.post("/api/analytics", json={
        "event_type": "page_view", "event_data": {"path": "/pricing"}, "source": "ads",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Event tracked successfully"
    assert body["event"]["user_id"] == str(test_auth.user.id)
    assert body["event"]["event_data"] == {"path": "/pricing"}


async def test_track_event_without_type(authed_client):
    response = await authed_client.post("/api/analytics", json={"event_data": {}})
    assert response.status_code == 400
    assert response.json()["error"] == "Event type is required"


async def test_user_activity_defaults_to_caller(authed_client, db, test_org):
    for event_type in ("page_view", "page_view", "signup"):
        await authed_client.post("/api/analytics", json={"event_type": event_type})
    someone_else = uuid.uuid4()
    _event(db, test_org, "click", user_id=str(someone_else))

    response = await authed_client.get("/api/analytics/user-activity")
    assert response.status_code == 200
    assert [(r["event_type"], r["count"]) for r in response.json()["stats"]] == [("page_view", 2), ("signup", 1)]

    response = await authed_client.get("/api/analytics/user-activity", params={"user_id": str(someone_else)})
    assert [(r["event_type"], r["count"]) for r in response.json()["stats"]] == [("click", 1)]


async def test_user_activity_requires_user_id(authed_client):
    app.dependency_overrides[get_optional_user_id] = lambda: None

    response = await authed_client.get("/api/analytics/user-activity")
    assert response.status_code == 400
    assert response.json()["error"] == "User ID required"


async def test_organization_stats_via_api(authed_client):
    await authed_client.post("/api/analytics", json={"event_type": "page_view"})
    await authed_client.post("/api/analytics", json={"event_type": "signup"})

    response = await authed_client.get(
        "/api/analytics/organization", params=[("event_types", "signup")]
    )
    assert response.status_code == 200
    assert [row["event_type"] for row in response.json()["stats"]] == ["signup"]


async def test_analytics_is_tenant_scoped(client, authed_client, other_auth):
    await authed_client.post("/api/analytics", json={"event_type": "page_view"})

    response = await client.get("/api/analytics/organization", headers=other_auth.bearer)
    assert response.json()["stats"] == []
