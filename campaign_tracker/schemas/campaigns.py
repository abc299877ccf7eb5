from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from campaign_tracker.core.patterns import DOMAIN_PATTERN, UTM_VALUE_PATTERN


class UtmParams(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    url: str = Field(..., max_length=2048)
    utm_source: Optional[str] = Field(default=None, max_length=255)
    utm_medium: Optional[str] = Field(default=None, max_length=255)
    utm_campaign: Optional[str] = Field(default=None, max_length=255)
    utm_term: Optional[str] = Field(default=None, max_length=255)
    utm_content: Optional[str] = Field(default=None, max_length=255)
    utm_id: Optional[str] = Field(default=None, max_length=255)
    custom: Optional[str] = Field(default=None, max_length=500)

    @field_validator("url")
    @classmethod
    def _http_url(cls, v: str) -> str:
        try:
            parts = urlsplit(v)
        except ValueError:
            raise ValueError("Invalid URL format")
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("Invalid URL format")
        return v


class CampaignIn(UtmParams):
    name: str = Field(..., min_length=1, max_length=100)
    domain: str = Field(..., min_length=1, max_length=255, pattern=DOMAIN_PATTERN)

    utm_source: str = Field(..., min_length=1, max_length=255, pattern=UTM_VALUE_PATTERN)
    utm_medium: str = Field(..., min_length=1, max_length=255, pattern=UTM_VALUE_PATTERN)
    utm_campaign: str = Field(..., min_length=1, max_length=255, pattern=UTM_VALUE_PATTERN)

    user_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("utm_term", "utm_content", "utm_id", "custom", "user_id")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    name: str
    url: str
    domain: str
    utm_source: str
    utm_medium: str
    utm_campaign: str
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None
    utm_id: Optional[str] = None
    custom: Optional[str] = None
    created_at: datetime

    tracking_url: Optional[str] = None


class UtmUrlOut(BaseModel):
    url: str
