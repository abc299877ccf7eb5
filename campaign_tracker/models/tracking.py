from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campaign_tracker.db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(100))
    url: Mapped[str] = mapped_column(String(2048))
    domain: Mapped[str] = mapped_column(String(255))

    utm_source: Mapped[str] = mapped_column(String(255))
    utm_medium: Mapped[str] = mapped_column(String(255))
    utm_campaign: Mapped[str] = mapped_column(String(255))
    utm_term: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    custom: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    events: Mapped[List["TrackingEvent"]] = relationship(
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# not unique: the resolver treats duplicate triples as unresolvable
Index("idx_campaigns_utm_triple", Campaign.utm_source, Campaign.utm_medium, Campaign.utm_campaign)


class TrackingEvent(Base):
    __tablename__ = "tracking_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    campaign_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column(String(16), index=True)  # click|pageview|conversion

    referrer: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)

    visitor_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    session_id: Mapped[str] = mapped_column(String(255), index=True)

    page_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    element_selector: Mapped[str | None] = mapped_column(String(500), nullable=True)
    element_text: Mapped[str | None] = mapped_column(String(200), nullable=True)
    screen_recording_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    user_agent: Mapped[str] = mapped_column(Text, default="Unknown")
    device_type: Mapped[str] = mapped_column(String(12), default="desktop")  # mobile|tablet|desktop
    browser: Mapped[str] = mapped_column(String(16), default="Other")
    ip_address: Mapped[str] = mapped_column(String(64), default="unknown")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    campaign: Mapped[Campaign] = relationship(back_populates="events")


Index("idx_tracking_events_campaign_day", TrackingEvent.campaign_id, TrackingEvent.created_at)
