"""Analytics event fact table."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from crm.db.base import Base
from crm.db.types import utcnow


class AnalyticsEvent(Base):
    """Append-only tracked event. Substrate for funnel and time-series stats."""

    __tablename__ = "analytics_events"
    __table_args__ = (
        Index("idx_analytics_events_org_ts", "organization_id", "timestamp"),
        Index("idx_analytics_events_user_ts", "user_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    # Staff user id for tracked requests, or an anonymous visitor id for page views
    user_id: Mapped[str | None] = mapped_column(String(255))
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    event_data: Mapped[dict[str, Any]] = mapped_column(default=dict, nullable=False)
    source: Mapped[str | None] = mapped_column(String(100))
    campaign: Mapped[str | None] = mapped_column(String(255))
    timestamp: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
