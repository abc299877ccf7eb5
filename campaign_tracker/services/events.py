from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_tracker.core.config import settings
from campaign_tracker.core.errors import InvalidInput, StorageFailure, validation_details
from campaign_tracker.models.tracking import TrackingEvent
from campaign_tracker.schemas.events import TrackingEventIn
from campaign_tracker.services.campaigns import resolve_campaign_id
from campaign_tracker.services.sanitize import sanitize_element_text, sanitize_page_path
from campaign_tracker.tracking_utils import (
    guess_browser_from_ua,
    guess_device_from_ua,
    new_id,
    resolve_identity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    ip_address: str
    user_agent: str


def validate_event(body: Any) -> TrackingEventIn:
    try:
        return TrackingEventIn.model_validate(body)
    except ValidationError as e:
        raise InvalidInput(validation_details(e.errors()))


def write_event(db: Session, event: TrackingEvent) -> str:
    """Insert one event in its own transaction. Nothing is kept on failure."""
    if not event.id:
        event.id = new_id()
    event_id, campaign_id = event.id, event.campaign_id
    try:
        db.add(event)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error inserting tracking event for campaign %s", campaign_id)
        raise StorageFailure()
    return event_id


def ingest_event(db: Session, payload: TrackingEventIn, client: ClientInfo) -> str:
    """
    Sanitize, resolve and persist a validated event. Returns the event id.
    Raises CampaignNotFound or StorageFailure; nothing is written in either case.
    """
    page_path = sanitize_page_path(payload.page_path)
    element_text = sanitize_element_text(payload.element_text)

    campaign_id = str(payload.campaign_id) if payload.campaign_id else None
    try:
        campaign_id = resolve_campaign_id(
            db,
            campaign_id,
            *payload.utm_triple(),
            verify=settings.verify_campaign_id,
        )
    except SQLAlchemyError:
        logger.exception("Campaign lookup failed")
        raise StorageFailure("Failed to resolve campaign")

    session_id, visitor_id = resolve_identity(payload.visitor_id, settings.session_identity)

    event = TrackingEvent(
        id=new_id(),
        campaign_id=campaign_id,
        event_type=payload.event_type,
        referrer=payload.referrer,
        utm_source=payload.utm_source,
        utm_medium=payload.utm_medium,
        utm_campaign=payload.utm_campaign,
        visitor_id=visitor_id,
        session_id=session_id,
        page_path=page_path,
        element_selector=payload.element_selector,
        element_text=element_text,
        screen_recording_url=payload.screen_recording_url,
        user_agent=client.user_agent,
        device_type=guess_device_from_ua(client.user_agent),
        browser=guess_browser_from_ua(client.user_agent),
        ip_address=client.ip_address,
    )
    return write_event(db, event)
