"""Analytics service - reporting aggregates for the analytics API.

All numeric work (counts, rates, averages, window functions) runs in the
database. Python only validates input, picks the grouping strategy, and turns
NULL division results into 0 and Decimals into floats for JSON.

Rates are percentages rounded to 1 decimal; ROI, velocity and money averages
to 2 decimals.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import (
    Integer,
    String,
    and_,
    case as sql_case,
    cast,
    distinct,
    func,
    literal,
    true,
    select,
    union_all,
)
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.exceptions import ValidationError
from crm.db.access import db_errors, get_row, get_rows, insert_row
from crm.db.enums import (
    ContactStatus,
    DealStatus,
    EventGrouping,
    FunnelName,
    LeadStatus,
    Period,
)
from crm.db.expressions import days_between, hour_of, percent, period_label, ratio, rounded, seconds_between
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
from crm.db.types import utcnow

VELOCITY_WINDOW_DAYS = 90
NEW_CONTACTS_WINDOW_DAYS = 30
ENGAGEMENT_LIMIT = 100
RECENT_CAMPAIGNS_LIMIT = 10
TOP_SUBJECT_MIN_RECIPIENTS = 10
PAGE_VIEW_EVENT = "page_view"
OPEN_EVENT = "open"


# =============================================================================
# Date ranges
# =============================================================================

@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


def _parse_bound(value: str, name: str, end_of_day: bool) -> datetime:
    text = value.strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            parsed = datetime.combine(day, time.max if end_of_day else time.min)
        else:
            # fromisoformat before 3.11 rejects a trailing Z
            parsed = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
    except ValueError:
        raise ValidationError(f"Invalid {name}: expected an ISO 8601 date", field=name)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date_range(
    start_date: str | None,
    end_date: str | None,
    max_days: int | None = None,
) -> DateRange | None:
    """
    Validate optional start/end query parameters.

    Both bounds or neither. Date-only values cover whole days, so an end date
    of ``2024-01-31`` includes everything on the 31st.

    Raises:
        ValidationError: one bound missing, unparseable, reversed, or the
            span exceeds ``max_days`` (default ANALYTICS_MAX_RANGE_DAYS)
    """
    if not start_date and not end_date:
        return None
    if not start_date or not end_date:
        raise ValidationError("start_date and end_date must be provided together")

    start = _parse_bound(start_date, "start_date", end_of_day=False)
    end = _parse_bound(end_date, "end_date", end_of_day=True)
    if start > end:
        raise ValidationError("start_date must not be after end_date")

    limit = max_days if max_days is not None else settings.ANALYTICS_MAX_RANGE_DAYS
    if end - start > timedelta(days=limit):
        raise ValidationError(f"Date range cannot exceed {limit} days")
    return DateRange(start=start, end=end)


def _between(column, date_range: DateRange | None):
    if date_range is None:
        return true()
    return column.between(date_range.start, date_range.end)


# =============================================================================
# Result shaping
# =============================================================================

def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _record(row: dict[str, Any], zero: Iterable[str] = ()) -> dict[str, Any]:
    """Decimals to floats; listed keys that came back NULL become 0."""
    out = {key: _plain(value) for key, value in row.items()}
    for key in zero:
        if out.get(key) is None:
            out[key] = 0
    return out


def _scalar(db: Session, stmt, default: Any = 0) -> Any:
    with db_errors():
        value = db.execute(stmt).scalar()
    return default if value is None else _plain(value)


# =============================================================================
# Contacts
# =============================================================================

def get_contact_stats(
    db: Session,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
    source: str | None = None,
) -> dict[str, Any]:
    """Contact growth per period, source breakdown, top engaged contacts and a summary."""
    date_range = parse_date_range(start_date, end_date)
    bucket = Period.parse(period)

    time_period = period_label(Contact.created_at, bucket).label("time_period")
    growth_stmt = select(
        time_period,
        func.count().label("new_contacts"),
        func.sum(sql_case((Contact.status == ContactStatus.ACTIVE.value, 1), else_=0)).label("active_contacts"),
        func.sum(sql_case((Contact.status == ContactStatus.INACTIVE.value, 1), else_=0)).label("inactive_contacts"),
        func.count(distinct(Contact.source)).label("unique_sources"),
    ).where(
        Contact.organization_id == org_id,
        _between(Contact.created_at, date_range),
    )
    if source:
        growth_stmt = growth_stmt.where(Contact.source == source)
    growth_stmt = growth_stmt.group_by(time_period).order_by(time_period)

    total_contacts = select(func.count()).where(Contact.organization_id == org_id).scalar_subquery()
    source_count = func.count().label("count")
    sources_stmt = select(
        Contact.source,
        source_count,
        percent(func.count(), total_contacts).label("percentage"),
    ).where(
        Contact.organization_id == org_id
    ).group_by(Contact.source).order_by(source_count.desc())

    total_interactions = func.count(AnalyticsEvent.id).label("total_interactions")
    engagement_stmt = select(
        Contact.id.label("contact_id"),
        Contact.email,
        Contact.first_name,
        Contact.last_name,
        total_interactions,
        func.max(AnalyticsEvent.timestamp).label("last_interaction"),
        func.count(distinct(AnalyticsEvent.event_type)).label("interaction_types"),
    ).select_from(Contact).outerjoin(
        AnalyticsEvent,
        and_(
            AnalyticsEvent.organization_id == Contact.organization_id,
            AnalyticsEvent.event_data["email"].as_string() == Contact.email,
        ),
    ).where(
        Contact.organization_id == org_id
    ).group_by(
        Contact.id, Contact.email, Contact.first_name, Contact.last_name
    ).order_by(total_interactions.desc(), Contact.id).limit(ENGAGEMENT_LIMIT)

    return {
        "growth": [_record(r) for r in get_rows(db, growth_stmt)],
        "sources": [_record(r, zero=("percentage",)) for r in get_rows(db, sources_stmt)],
        "engagement": [_record(r) for r in get_rows(db, engagement_stmt)],
        "summary": _contact_summary(db, org_id),
    }


def _contact_summary(db: Session, org_id: UUID) -> dict[str, Any]:
    cutoff = utcnow() - timedelta(days=NEW_CONTACTS_WINDOW_DAYS)
    counts = get_row(db, select(
        func.count().label("total_contacts"),
        func.sum(sql_case((Contact.status == ContactStatus.ACTIVE.value, 1), else_=0)).label("active_contacts"),
        func.sum(sql_case((Contact.created_at >= cutoff, 1), else_=0)).label("new_contacts_30d"),
    ).where(Contact.organization_id == org_id))

    # Share of contacts with at least one deal
    conversion = _scalar(db, select(
        percent(func.count(distinct(Deal.contact_id)), func.count(distinct(Contact.id)))
    ).select_from(Contact).outerjoin(
        Deal,
        and_(Deal.contact_id == Contact.id, Deal.organization_id == Contact.organization_id),
    ).where(Contact.organization_id == org_id))

    summary = _record(counts, zero=("total_contacts", "active_contacts", "new_contacts_30d"))
    summary["conversion_rate"] = conversion
    return summary


# =============================================================================
# Deals
# =============================================================================

def get_deal_stats(
    db: Session,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
    pipeline_id: UUID | None = None,
) -> dict[str, Any]:
    """Deal timeline, per-pipeline and per-stage rollups, 90-day velocity and a summary."""
    date_range = parse_date_range(start_date, end_date)
    bucket = Period.parse(period)
    is_won = Deal.status == DealStatus.WON.value

    time_period = period_label(Deal.created_at, bucket).label("time_period")
    timeline_stmt = select(
        time_period,
        func.count().label("new_deals"),
        func.sum(Deal.value).label("total_value"),
        rounded(func.avg(Deal.value), 2).label("avg_deal_value"),
        func.sum(sql_case((is_won, 1), else_=0)).label("won_deals"),
        func.sum(sql_case((Deal.status == DealStatus.LOST.value, 1), else_=0)).label("lost_deals"),
        func.sum(sql_case((is_won, Deal.value), else_=0)).label("won_value"),
        percent(func.sum(sql_case((is_won, 1), else_=0)), func.count()).label("win_rate"),
    ).where(
        Deal.organization_id == org_id,
        _between(Deal.created_at, date_range),
    )
    if pipeline_id:
        timeline_stmt = timeline_stmt.where(Deal.pipeline_id == pipeline_id)
    timeline_stmt = timeline_stmt.group_by(time_period).order_by(time_period)

    pipeline_value = func.coalesce(func.sum(Deal.value), 0).label("total_value")
    pipelines_stmt = select(
        Pipeline.name.label("pipeline_name"),
        Pipeline.id.label("pipeline_id"),
        func.count(Deal.id).label("deal_count"),
        pipeline_value,
        rounded(func.avg(Deal.value), 2).label("avg_value"),
        percent(func.sum(sql_case((is_won, 1), else_=0)), func.count(Deal.id)).label("win_rate"),
    ).select_from(Deal).join(
        Pipeline, Deal.pipeline_id == Pipeline.id
    ).where(
        Deal.organization_id == org_id
    ).group_by(Pipeline.id, Pipeline.name).order_by(pipeline_value.desc(), Pipeline.name)

    now = utcnow()
    stages_stmt = select(
        Stage.name.label("stage_name"),
        Stage.id.label("stage_id"),
        func.count(Deal.id).label("deal_count"),
        func.coalesce(func.sum(Deal.value), 0).label("total_value"),
        rounded(func.avg(days_between(func.coalesce(Deal.updated_at, now), Deal.created_at)), 1).label("avg_days_in_stage"),
    ).select_from(Deal).join(
        Stage, Deal.stage_id == Stage.id
    ).where(
        Deal.organization_id == org_id
    ).group_by(Stage.id, Stage.name, Stage.position).order_by(Stage.position, Stage.name)

    return {
        "timeline": [
            _record(r, zero=("total_value", "avg_deal_value", "won_value", "win_rate"))
            for r in get_rows(db, timeline_stmt)
        ],
        "pipelines": [_record(r, zero=("avg_value", "win_rate")) for r in get_rows(db, pipelines_stmt)],
        "stages": [_record(r, zero=("avg_days_in_stage",)) for r in get_rows(db, stages_stmt)],
        "velocity": _deal_velocity(db, org_id),
        "summary": _deal_summary(db, org_id),
    }


def _deal_velocity(db: Session, org_id: UUID) -> dict[str, Any]:
    """
    Won deals closed in the last 90 days (by updated_at).

    sales_velocity_per_day = total won value / total days to close.
    """
    today = datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)
    won = select(
        Deal.id,
        Deal.value,
        days_between(Deal.updated_at, Deal.created_at).label("days_to_close"),
    ).where(
        Deal.organization_id == org_id,
        Deal.status == DealStatus.WON.value,
        Deal.updated_at >= today - timedelta(days=VELOCITY_WINDOW_DAYS),
    ).subquery("won_deals")

    row = get_row(db, select(
        func.count().label("won_deals_count"),
        func.sum(won.c.value).label("total_won_value"),
        rounded(func.avg(won.c.days_to_close), 1).label("avg_days_to_close"),
        ratio(func.sum(won.c.value), func.sum(won.c.days_to_close), 2).label("sales_velocity_per_day"),
    ).select_from(won))
    return _record(row, zero=("won_deals_count", "total_won_value", "avg_days_to_close", "sales_velocity_per_day"))


def _deal_summary(db: Session, org_id: UUID) -> dict[str, Any]:
    in_org = Deal.organization_id == org_id
    is_won = Deal.status == DealStatus.WON.value
    return {
        "total_deals": _scalar(db, select(func.count()).where(in_org)),
        "open_deals_value": _scalar(db, select(func.sum(Deal.value)).where(
            in_org, Deal.status == DealStatus.OPEN.value
        )),
        "win_rate": _scalar(db, select(
            percent(func.sum(sql_case((is_won, 1), else_=0)), func.count())
        ).where(in_org, Deal.status.in_([DealStatus.WON.value, DealStatus.LOST.value]))),
        "avg_deal_cycle": _scalar(db, select(
            rounded(func.avg(days_between(Deal.updated_at, Deal.created_at)), 1)
        ).where(in_org, is_won)),
    }


# =============================================================================
# Email campaigns
# =============================================================================

def get_email_campaign_stats(
    db: Session,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
) -> dict[str, Any]:
    """Send timeline, recent campaign rates, open hours, devices and a summary."""
    date_range = parse_date_range(start_date, end_date)
    bucket = Period.parse(period)
    in_org = EmailCampaign.organization_id == org_id

    time_period = period_label(EmailCampaign.sent_at, bucket).label("time_period")
    timeline_stmt = select(
        time_period,
        func.count(distinct(EmailCampaign.id)).label("campaigns_count"),
        func.sum(EmailCampaign.recipients_count).label("total_recipients"),
        func.sum(EmailCampaign.opened_count).label("total_opens"),
        func.sum(EmailCampaign.clicked_count).label("total_clicks"),
        percent(func.sum(EmailCampaign.opened_count), func.sum(EmailCampaign.recipients_count)).label("open_rate"),
        percent(func.sum(EmailCampaign.clicked_count), func.sum(EmailCampaign.opened_count)).label("click_through_rate"),
        percent(func.sum(EmailCampaign.unsubscribed_count), func.sum(EmailCampaign.recipients_count)).label("unsubscribe_rate"),
    ).where(
        in_org,
        EmailCampaign.sent_at.is_not(None),
        _between(EmailCampaign.sent_at, date_range),
    ).group_by(time_period).order_by(time_period)

    campaigns_stmt = select(
        EmailCampaign.id,
        EmailCampaign.name,
        EmailCampaign.subject,
        EmailCampaign.recipients_count,
        EmailCampaign.opened_count,
        EmailCampaign.clicked_count,
        EmailCampaign.bounced_count,
        EmailCampaign.unsubscribed_count,
        percent(EmailCampaign.opened_count, EmailCampaign.recipients_count).label("open_rate"),
        percent(EmailCampaign.clicked_count, EmailCampaign.opened_count).label("click_rate"),
        percent(EmailCampaign.bounced_count, EmailCampaign.recipients_count).label("bounce_rate"),
        percent(EmailCampaign.unsubscribed_count, EmailCampaign.recipients_count).label("unsubscribe_rate"),
    ).where(in_org).order_by(
        EmailCampaign.sent_at.desc().nulls_last(), EmailCampaign.created_at.desc()
    ).limit(RECENT_CAMPAIGNS_LIMIT)

    is_open = and_(
        EmailCampaignEvent.organization_id == org_id,
        EmailCampaignEvent.event_type == OPEN_EVENT,
    )
    hour = hour_of(EmailCampaignEvent.opened_at).label("hour_of_day")
    hours_stmt = select(
        hour,
        func.count().label("open_count"),
    ).where(is_open, EmailCampaignEvent.opened_at.is_not(None)).group_by(hour).order_by(hour)

    total_opens = select(func.count()).where(is_open).scalar_subquery()
    device = EmailCampaignEvent.user_agent_data["device"].as_string().label("device")
    device_count = func.count().label("count")
    devices_stmt = select(
        device,
        device_count,
        percent(func.count(), total_opens).label("percentage"),
    ).where(is_open).group_by(device).order_by(device_count.desc(), device)

    rate_keys = ("open_rate", "click_rate", "bounce_rate", "unsubscribe_rate")
    return {
        "timeline": [
            _record(r, zero=("open_rate", "click_through_rate", "unsubscribe_rate"))
            for r in get_rows(db, timeline_stmt)
        ],
        "campaigns": [_record(r, zero=rate_keys) for r in get_rows(db, campaigns_stmt)],
        "engagement_times": [_record(r) for r in get_rows(db, hours_stmt)],
        "devices": [_record(r, zero=("percentage",)) for r in get_rows(db, devices_stmt)],
        "summary": _email_summary(db, org_id),
    }


def _email_summary(db: Session, org_id: UUID) -> dict[str, Any]:
    in_org = EmailCampaign.organization_id == org_id
    open_rate = percent(EmailCampaign.opened_count, EmailCampaign.recipients_count)
    top = get_row(db, select(EmailCampaign.subject).where(
        in_org,
        EmailCampaign.recipients_count >= TOP_SUBJECT_MIN_RECIPIENTS,
    ).order_by(open_rate.desc(), EmailCampaign.created_at).limit(1))

    return {
        "total_campaigns": _scalar(db, select(func.count()).where(in_org)),
        "avg_open_rate": _scalar(db, select(
            percent(func.sum(EmailCampaign.opened_count), func.sum(EmailCampaign.recipients_count))
        ).where(in_org)),
        "avg_click_rate": _scalar(db, select(
            percent(func.sum(EmailCampaign.clicked_count), func.sum(EmailCampaign.opened_count))
        ).where(in_org)),
        "top_performing_subject": top["subject"] if top else None,
    }


# =============================================================================
# Funnel
# =============================================================================

def _stage_row(name: str, count, order):
    return select(
        cast(literal(name), String).label("stage"),
        count.label("count"),
        cast(literal(order), Integer).label("stage_order"),
    )


def _marketing_funnel(org_id: UUID):
    contacts_in_org = Contact.organization_id == org_id
    deals_in_org = Deal.organization_id == org_id
    return union_all(
        _stage_row("Visit", func.count(distinct(AnalyticsEvent.user_id)), 1).where(
            AnalyticsEvent.organization_id == org_id,
            AnalyticsEvent.event_type == PAGE_VIEW_EVENT,
        ),
        _stage_row("Lead", func.count(distinct(Contact.id)), 2).where(contacts_in_org),
        _stage_row("MQL", func.count(distinct(Contact.id)), 3).where(
            contacts_in_org, Contact.lead_status == LeadStatus.MARKETING_QUALIFIED.value
        ),
        _stage_row("SQL", func.count(distinct(Contact.id)), 4).where(
            contacts_in_org, Contact.lead_status == LeadStatus.SALES_QUALIFIED.value
        ),
        _stage_row("Opportunity", func.count(distinct(Deal.id)), 5).where(deals_in_org),
        _stage_row("Customer", func.count(distinct(Deal.id)), 6).where(
            deals_in_org, Deal.status == DealStatus.WON.value
        ),
    ).cte("funnel_stages")


def _pipeline_funnel(org_id: UUID):
    org_pipelines = select(Pipeline.id).where(Pipeline.organization_id == org_id)
    return select(
        Stage.name.label("stage"),
        func.count(Deal.id).label("count"),
        Stage.position.label("stage_order"),
    ).select_from(Stage).outerjoin(
        Deal,
        and_(Deal.stage_id == Stage.id, Deal.organization_id == org_id),
    ).where(
        Stage.pipeline_id.in_(org_pipelines)
    ).group_by(Stage.name, Stage.position).cte("funnel_stages")


def _funnel_summary(stages: list[dict[str, Any]]) -> tuple[str | None, float]:
    """(biggest_drop_stage, overall_conversion) from ordered stage counts."""
    biggest_drop = None
    largest_loss = 0
    for prev, curr in zip(stages, stages[1:]):
        loss = prev["count"] - curr["count"]
        if loss > largest_loss:
            largest_loss = loss
            biggest_drop = f"{prev['stage']} to {curr['stage']}"

    overall = 0.0
    if stages and stages[0]["count"] > 0:
        overall = round(stages[-1]["count"] * 100.0 / stages[0]["count"], 1)
    return biggest_drop, overall


def get_funnel_stats(
    db: Session,
    org_id: UUID,
    funnel_name: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict[str, Any]:
    """
    Stage counts with step and cumulative conversion.

    conversion_rate is relative to the previous stage (100 for the first,
    0 when the previous count is 0); absolute_rate is relative to the first
    stage (0 when the first count is 0). Counts are all-time.
    """
    parse_date_range(start_date, end_date)
    name = FunnelName.MARKETING if funnel_name == FunnelName.MARKETING.value else FunnelName.DEFAULT
    fs = _marketing_funnel(org_id) if name == FunnelName.MARKETING else _pipeline_funnel(org_id)

    previous = func.lag(fs.c.count).over(order_by=[fs.c.stage_order, fs.c.stage])
    first = func.first_value(fs.c.count).over(order_by=[fs.c.stage_order, fs.c.stage])
    stmt = select(
        fs.c.stage,
        fs.c.count,
        sql_case((previous.is_(None), 100), else_=percent(fs.c.count, previous)).label("conversion_rate"),
        sql_case((first == 0, 0), else_=percent(fs.c.count, first)).label("absolute_rate"),
    ).order_by(fs.c.stage_order, fs.c.stage)

    stages = [_record(r, zero=("count", "conversion_rate", "absolute_rate")) for r in get_rows(db, stmt)]
    biggest_drop, overall = _funnel_summary(stages)
    return {
        "funnel_name": funnel_name or FunnelName.DEFAULT.value,
        "stages": stages,
        "conversion_summary": {
            "top_entry_point": _top_source(db, org_id),
            "biggest_drop_stage": biggest_drop,
            "overall_conversion": overall,
        },
    }


def _top_source(db: Session, org_id: UUID) -> str | None:
    count = func.count().label("count")
    row = get_row(db, select(Contact.source, count).where(
        Contact.organization_id == org_id
    ).group_by(Contact.source).order_by(count.desc(), Contact.source).limit(1))
    return row["source"] if row else None


# =============================================================================
# Marketing ROI
# =============================================================================

def _campaign_filters(org_id: UUID, date_range: DateRange | None, channel: str | None) -> list:
    filters = [MarketingCampaign.organization_id == org_id]
    if date_range is not None:
        filters += [
            MarketingCampaign.start_date >= date_range.start.date(),
            MarketingCampaign.end_date <= date_range.end.date(),
        ]
    if channel:
        filters.append(MarketingCampaign.channel == channel)
    return filters


def get_roi_stats(
    db: Session,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    channel: str | None = None,
) -> dict[str, Any]:
    """
    Per-channel spend against the contacts and deals it sourced.

    A contact is attributed to a channel when its ``source`` equals the
    channel name. Spend and attribution are aggregated separately so a
    channel's cost is not multiplied by its contact count.
    """
    date_range = parse_date_range(start_date, end_date)

    spend = select(
        MarketingCampaign.channel.label("channel"),
        func.sum(MarketingCampaign.cost).label("total_cost"),
    ).where(
        *_campaign_filters(org_id, date_range, channel)
    ).group_by(MarketingCampaign.channel).subquery("spend")

    won_value = sql_case((Deal.status == DealStatus.WON.value, Deal.value), else_=0)
    attribution = select(
        Contact.source.label("channel"),
        func.count(distinct(Contact.id)).label("leads_generated"),
        func.count(distinct(Deal.id)).label("opportunities_created"),
        func.coalesce(func.sum(won_value), 0).label("revenue_generated"),
    ).select_from(Contact).outerjoin(
        Deal,
        and_(Deal.contact_id == Contact.id, Deal.organization_id == Contact.organization_id),
    ).where(
        Contact.organization_id == org_id,
        Contact.source.is_not(None),
    ).group_by(Contact.source).subquery("attribution")

    leads = func.coalesce(attribution.c.leads_generated, 0)
    opportunities = func.coalesce(attribution.c.opportunities_created, 0)
    revenue = func.coalesce(attribution.c.revenue_generated, 0)
    roi = ratio(revenue, spend.c.total_cost, 2).label("roi")
    stmt = select(
        spend.c.channel,
        spend.c.total_cost,
        leads.label("leads_generated"),
        opportunities.label("opportunities_created"),
        revenue.label("revenue_generated"),
        roi,
        ratio(spend.c.total_cost, leads, 2).label("cost_per_lead"),
        ratio(spend.c.total_cost, opportunities, 2).label("cost_per_opportunity"),
    ).select_from(spend).outerjoin(
        attribution, attribution.c.channel == spend.c.channel
    ).order_by(func.coalesce(roi, 0).desc(), spend.c.channel)

    channels = [
        _record(r, zero=("total_cost", "revenue_generated", "roi", "cost_per_lead", "cost_per_opportunity"))
        for r in get_rows(db, stmt)
    ]
    return {"channels": channels, "summary": _roi_summary(db, org_id, date_range, channel, channels)}


def _roi_summary(
    db: Session,
    org_id: UUID,
    date_range: DateRange | None,
    channel: str | None,
    channels: list[dict[str, Any]],
) -> dict[str, Any]:
    spend = _scalar(db, select(func.sum(MarketingCampaign.cost)).where(
        *_campaign_filters(org_id, date_range, channel)
    ))

    revenue_stmt = select(func.sum(Deal.value)).select_from(Deal).join(
        Contact, Deal.contact_id == Contact.id
    ).where(
        Deal.organization_id == org_id,
        Deal.status == DealStatus.WON.value,
        _between(Deal.created_at, date_range),
    )
    if channel:
        revenue_stmt = revenue_stmt.where(Contact.source == channel)
    revenue = _scalar(db, revenue_stmt)

    return {
        "total_marketing_spend": spend,
        "total_revenue_attributed": revenue,
        "overall_roi": round(revenue / spend, 2) if spend else 0,
        "best_performing_channel": channels[0]["channel"] if channels else None,
    }


# =============================================================================
# Tracked events
# =============================================================================

def _event_group_columns(grouping: EventGrouping, source) -> list:
    """Grouping strategy → columns of ``source`` (a table or subquery)."""
    if grouping == EventGrouping.TIME:
        return [period_label(source.c.timestamp, Period.DAY).label("day"), source.c.event_type]
    if grouping == EventGrouping.SOURCE:
        return [source.c.source, source.c.event_type]
    if grouping == EventGrouping.CAMPAIGN:
        return [source.c.campaign, source.c.event_type]
    return [source.c.event_type]


def get_organization_event_stats(
    db: Session,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    event_types: list[str] | None = None,
    group_by: str | None = None,
) -> list[dict[str, Any]]:
    """
    Event counts, distinct users and mean gap between a user's consecutive
    events (seconds), grouped by the requested strategy.
    """
    date_range = parse_date_range(start_date, end_date)
    grouping = EventGrouping.parse(group_by)
    events = AnalyticsEvent.__table__

    next_ts = func.lead(events.c.timestamp).over(
        partition_by=events.c.user_id, order_by=events.c.timestamp
    )
    gaps = select(
        events.c.user_id,
        events.c.event_type,
        events.c.source,
        events.c.campaign,
        events.c.timestamp,
        seconds_between(next_ts, events.c.timestamp).label("gap_seconds"),
    ).where(
        events.c.organization_id == org_id,
        _between(events.c.timestamp, date_range),
    )
    if event_types:
        gaps = gaps.where(events.c.event_type.in_(event_types))
    gaps = gaps.subquery("gaps")

    group_cols = _event_group_columns(grouping, gaps)
    event_count = func.count().label("event_count")
    stmt = select(
        *group_cols,
        event_count,
        func.count(distinct(gaps.c.user_id)).label("unique_users"),
        func.avg(gaps.c.gap_seconds).label("avg_time_between_events"),
    ).group_by(*group_cols).order_by(event_count.desc(), *group_cols)

    return [_record(r) for r in get_rows(db, stmt)]


def get_user_activity(
    db: Session,
    user_id: UUID | str,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    group_by: str | None = None,
) -> list[dict[str, Any]]:
    """One user's event counts, grouped by time, source or event type."""
    date_range = parse_date_range(start_date, end_date)
    grouping = EventGrouping.parse(group_by)
    if grouping == EventGrouping.CAMPAIGN:
        grouping = EventGrouping.EVENT_TYPE
    events = AnalyticsEvent.__table__

    group_cols = _event_group_columns(grouping, events)
    count = func.count().label("count")
    stmt = select(*group_cols, count).where(
        events.c.organization_id == org_id,
        events.c.user_id == str(user_id),
        _between(events.c.timestamp, date_range),
    ).group_by(*group_cols).order_by(count.desc(), *group_cols)

    return [_record(r) for r in get_rows(db, stmt)]


def track_event(
    db: Session,
    org_id: UUID,
    user_id: UUID | str | None,
    event_type: str | None,
    event_data: dict[str, Any] | None = None,
    source: str | None = None,
    campaign: str | None = None,
) -> AnalyticsEvent:
    """Append one event to the analytics fact table."""
    if not event_type:
        raise ValidationError("Event type is required", field="event_type")
    return insert_row(db, AnalyticsEvent, {
        "organization_id": org_id,
        "user_id": str(user_id) if user_id is not None else None,
        "event_type": event_type,
        "event_data": event_data or {},
        "source": source,
        "campaign": campaign,
        "timestamp": utcnow(),
    })


# =============================================================================
# Dashboard
# =============================================================================

def get_dashboard(
    db: Session,
    org_id: UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    period: str | None = None,
) -> dict[str, Any]:
    """All report families in one payload. Runs sequentially on one session."""
    parse_date_range(start_date, end_date)
    return {
        "contacts": get_contact_stats(db, org_id, start_date, end_date, period),
        "deals": get_deal_stats(db, org_id, start_date, end_date, period),
        "emailCampaigns": get_email_campaign_stats(db, org_id, start_date, end_date, period),
        "funnel": get_funnel_stats(db, org_id, None, start_date, end_date),
        "roi": get_roi_stats(db, org_id, start_date, end_date),
        "lastUpdated": utcnow().isoformat(),
    }
