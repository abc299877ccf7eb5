from __future__ import annotations

import uuid
from typing import Optional, Tuple

from starlette.requests import Request

from campaign_tracker.core.ratelimit import UNKNOWN_CLIENT

UNKNOWN_USER_AGENT = "Unknown"

# checked in order; proxies put the original client first in X-Forwarded-For
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def new_id() -> str:
    return str(uuid.uuid4())


def client_ip_from_request(request: Request) -> str:
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def user_agent_from_request(request: Request) -> str:
    return request.headers.get("user-agent") or UNKNOWN_USER_AGENT


def guess_device_from_ua(user_agent: str | None) -> str:
    ua = user_agent or ""
    if "Mobile" in ua:
        return "mobile"
    if "Tablet" in ua:
        return "tablet"
    return "desktop"


def guess_browser_from_ua(user_agent: str | None) -> str:
    # Chrome UAs also carry "Safari", so order matters
    ua = user_agent or ""
    if "Chrome" in ua:
        return "Chrome"
    if "Firefox" in ua:
        return "Firefox"
    if "Safari" in ua:
        return "Safari"
    return "Other"


def resolve_identity(visitor_id: Optional[str], policy: str = "shared") -> Tuple[str, Optional[str]]:
    """
    Returns (session_id, visitor_id) to store.

    shared:   one identity. session_id is the visitor id when the snippet
              sent one, otherwise a fresh id that is also stored as visitor_id.
    separate: visitor_id is kept as sent (possibly None) and every call
              gets its own generated session_id.
    """
    if policy == "separate":
        return new_id(), visitor_id or None

    session_id = visitor_id or new_id()
    return session_id, visitor_id or session_id
