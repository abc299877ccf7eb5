# campaign_tracker/schemas/events.py
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

EventType = Literal["click", "pageview", "conversion"]


class TrackingEventIn(BaseModel):
    """
    Body posted by the tracking snippet.
    Strings are trimmed before length checks; unknown keys are dropped.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    campaign_id: Optional[UUID] = None
    event_type: EventType

    referrer: Optional[str] = Field(default=None, max_length=2048)
    utm_source: Optional[str] = Field(default=None, max_length=255)
    utm_medium: Optional[str] = Field(default=None, max_length=255)
    utm_campaign: Optional[str] = Field(default=None, max_length=255)

    visitor_id: Optional[str] = Field(default=None, max_length=255)
    page_path: Optional[str] = Field(default=None, max_length=2048)
    element_selector: Optional[str] = Field(default=None, max_length=500)
    element_text: Optional[str] = Field(default=None, max_length=500)
    screen_recording_url: Optional[str] = Field(default=None, max_length=2048)

    def utm_triple(self):
        return self.utm_source, self.utm_medium, self.utm_campaign


class TrackEventOut(BaseModel):
    success: bool = True
    event_id: str


class TrackingEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    campaign_id: str
    event_type: str
    referrer: Optional[str] = None
    visitor_id: Optional[str] = None
    session_id: str
    page_path: Optional[str] = None
    element_selector: Optional[str] = None
    element_text: Optional[str] = None
    device_type: str
    browser: str
    ip_address: str
    created_at: datetime
