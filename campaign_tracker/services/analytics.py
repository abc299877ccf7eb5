"""
Dashboard aggregations.

Rows are fetched with plain filters and reduced in Python, the same way the
dashboard cards have always computed them. Fine for the volumes a single
campaign owner produces; not meant for warehouse-scale data.
"""
from __future__ import annotations

from collections import Counter, OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import parse_qs, urlsplit

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from campaign_tracker.core.patterns import ORGANIC_HINTS, PAID_HINTS, SEARCH_PARAMS, SOURCE_HINTS
from campaign_tracker.models.tracking import Campaign, TrackingEvent, utcnow

RANGES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}

LIVE_EVENTS_LIMIT = 20
LIVE_CAMPAIGNS_LIMIT = 5
VISITOR_EVENTS_LIMIT = 1000
VISITOR_PROFILES_LIMIT = 20


def _ranked(counter: Counter, key: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    return [{key: name, "count": n} for name, n in counter.most_common(limit)]


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------
def fetch_events(
    db: Session,
    range_key: str = "7d",
    search: Optional[str] = None,
    campaign_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[TrackingEvent]:
    since = (now or utcnow()) - RANGES.get(range_key, RANGES["7d"])
    q = db.query(TrackingEvent).filter(TrackingEvent.created_at >= since)
    if campaign_id:
        q = q.filter(TrackingEvent.campaign_id == campaign_id)
    if search:
        pattern = f"%{search}%"
        q = q.filter(
            or_(
                TrackingEvent.page_path.ilike(pattern),
                TrackingEvent.element_text.ilike(pattern),
            )
        )
    return q.order_by(TrackingEvent.created_at.desc()).all()


# -----------------------------------------------------------------------------
# Summary
# -----------------------------------------------------------------------------
def is_organic(referrer: Optional[str]) -> bool:
    if not referrer:
        return True
    if "utm_" in referrer:
        return False
    return any(h in referrer for h in ORGANIC_HINTS)


def is_paid(referrer: Optional[str]) -> bool:
    return bool(referrer) and any(h in referrer for h in PAID_HINTS)


def source_from_referrer(referrer: Optional[str]) -> str:
    for hint in SOURCE_HINTS:
        if referrer and hint in referrer:
            return hint
    return "direct"


def search_keyword(referrer: Optional[str]) -> Optional[str]:
    if not referrer:
        return None
    try:
        params = parse_qs(urlsplit(referrer).query)
    except ValueError:
        return None
    for name in SEARCH_PARAMS:
        values = params.get(name)
        if values and values[0]:
            return values[0]
    return None


def bounce_rate(events: Iterable[TrackingEvent]) -> int:
    """Percent of sessions (with at least one pageview) that saw exactly one."""
    per_session: Counter = Counter(
        e.session_id for e in events if e.session_id and e.event_type == "pageview"
    )
    if not per_session:
        return 0
    bounced = sum(1 for n in per_session.values() if n == 1)
    # halves round up
    return int(bounced / len(per_session) * 100 + 0.5)


def summarize(events: Sequence[TrackingEvent]) -> Dict[str, Any]:
    by_type = Counter(e.event_type for e in events)

    pages: Counter = Counter(e.page_path or "/" for e in events)
    devices: Counter = Counter(e.device_type or "desktop" for e in events)
    sources: Counter = Counter(source_from_referrer(e.referrer) for e in events)
    keywords: Counter = Counter(k for k in (search_keyword(e.referrer) for e in events) if k)

    clicks_by_page: "OrderedDict[str, Dict[str, int]]" = OrderedDict()
    for e in events:
        if not e.page_path:
            continue
        row = clicks_by_page.setdefault(e.page_path, {"clicks": 0, "conversions": 0})
        if e.event_type == "click":
            row["clicks"] += 1
        elif e.event_type == "conversion":
            row["conversions"] += 1

    top_clicks = sorted(
        ({"page": page, **row} for page, row in clicks_by_page.items()),
        key=lambda r: r["clicks"],
        reverse=True,
    )[:10]

    recordings = [
        {
            "visitor_id": e.visitor_id or "unknown",
            "recording": e.screen_recording_url,
            "timestamp": e.created_at.isoformat() if e.created_at else None,
        }
        for e in events
        if e.screen_recording_url
    ][:5]

    return {
        "total_clicks": by_type.get("click", 0),
        "total_pageviews": by_type.get("pageview", 0),
        "total_conversions": by_type.get("conversion", 0),
        "unique_visitors": len({e.visitor_id for e in events if e.visitor_id}),
        "bounce_rate": bounce_rate(events),
        "organic_traffic": sum(1 for e in events if is_organic(e.referrer)),
        "paid_traffic": sum(1 for e in events if is_paid(e.referrer)),
        "utm_sources": _ranked(sources, "source"),
        "devices": _ranked(devices, "device"),
        "top_pages": [{"page": p, "views": n} for p, n in pages.most_common(10)],
        "keywords": _ranked(keywords, "keyword", 10),
        "clicks_by_page": top_clicks,
        "recent_sessions": recordings,
    }


# -----------------------------------------------------------------------------
# Live feed
# -----------------------------------------------------------------------------
def conversion_rate(clicks: int, conversions: int) -> str:
    if not clicks:
        return "0.0"
    return f"{conversions / clicks * 100:.1f}"


def live_overview(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    todays = (
        db.query(TrackingEvent.campaign_id, TrackingEvent.event_type)
        .filter(TrackingEvent.created_at >= day_start)
        .all()
    )

    per_campaign: Dict[str, Counter] = {}
    for campaign_id, event_type in todays:
        per_campaign.setdefault(campaign_id, Counter())[event_type] += 1

    names = {}
    if per_campaign:
        names = {
            c.id: c
            for c in db.query(Campaign).filter(Campaign.id.in_(list(per_campaign))).all()
        }

    stats = []
    for campaign_id, counts in per_campaign.items():
        c = names.get(campaign_id)
        stats.append(
            {
                "campaign_id": campaign_id,
                "name": c.name if c else None,
                "utm_source": c.utm_source if c else None,
                "clicks": counts.get("click", 0),
                "pageviews": counts.get("pageview", 0),
                "conversions": counts.get("conversion", 0),
            }
        )
    stats.sort(key=lambda s: s["clicks"], reverse=True)

    totals = {
        "clicks": sum(s["clicks"] for s in stats),
        "pageviews": sum(s["pageviews"] for s in stats),
        "conversions": sum(s["conversions"] for s in stats),
    }

    latest = (
        db.query(TrackingEvent)
        .options(joinedload(TrackingEvent.campaign))
        .order_by(TrackingEvent.created_at.desc())
        .limit(LIVE_EVENTS_LIMIT)
        .all()
    )

    return {
        "date": day_start.date().isoformat(),
        "campaigns": stats[:LIVE_CAMPAIGNS_LIMIT],
        "totals": totals,
        "conversion_rate": conversion_rate(totals["clicks"], totals["conversions"]),
        "events": [
            {
                "id": e.id,
                "event_type": e.event_type,
                "campaign_id": e.campaign_id,
                "campaign_name": e.campaign.name if e.campaign else None,
                "utm_source": e.campaign.utm_source if e.campaign else None,
                "created_at": e.created_at.isoformat(),
                "visitor_id": e.visitor_id,
                "ip_address": e.ip_address,
                "page_path": e.page_path,
                "element_text": e.element_text,
            }
            for e in latest
        ],
    }


# -----------------------------------------------------------------------------
# Visitor profiles
# -----------------------------------------------------------------------------
def engagement_score(clicks: int, pageviews: int, conversions: int, sessions: int) -> int:
    return min(100, clicks * 10 + pageviews * 5 + conversions * 50 + sessions * 15)


def conversion_likelihood(clicks: int, pageviews: int, conversions: int) -> int:
    if conversions > 0:
        return 85
    if clicks > 5:
        return 60
    if pageviews > 3:
        return 40
    return 20


def behavior_pattern(clicks: int, pageviews: int, conversions: int, sessions: int) -> str:
    if conversions > 0:
        return "Converted Customer"
    if clicks > 10:
        return "Highly Engaged"
    if pageviews > 5:
        return "Active Browser"
    if sessions > 2:
        return "Returning Visitor"
    return "New Visitor"


def visitor_profiles(events: Sequence[TrackingEvent], limit: int = VISITOR_PROFILES_LIMIT) -> List[Dict[str, Any]]:
    """Group events (newest first) by visitor and score each visitor."""
    grouped: "OrderedDict[str, List[TrackingEvent]]" = OrderedDict()
    for e in events:
        grouped.setdefault(e.visitor_id or "unknown", []).append(e)

    profiles = []
    for visitor_id, rows in grouped.items():
        types = Counter(e.event_type for e in rows)
        clicks, pageviews, conversions = types["click"], types["pageview"], types["conversion"]
        sessions = {e.session_id for e in rows if e.session_id}

        stamps = sorted(e.created_at for e in rows if e.created_at)
        duration_min = (stamps[-1] - stamps[0]).total_seconds() / 60 if len(stamps) > 1 else 0.0

        pages = list(OrderedDict.fromkeys(e.page_path for e in rows if e.page_path))
        devices = list(OrderedDict.fromkeys(e.device_type for e in rows if e.device_type))

        profiles.append(
            {
                "visitor_id": visitor_id,
                "total_sessions": len(sessions),
                "total_clicks": clicks,
                "total_pageviews": pageviews,
                "conversions": conversions,
                "avg_session_duration": duration_min / len(sessions) if sessions else 0.0,
                "last_seen": stamps[-1].isoformat() if stamps else None,
                "devices": devices,
                "top_pages": pages[:3],
                "behavior_pattern": behavior_pattern(clicks, pageviews, conversions, len(sessions)),
                "engagement_score": engagement_score(clicks, pageviews, conversions, len(sessions)),
                "conversion_likelihood": conversion_likelihood(clicks, pageviews, conversions),
            }
        )

    profiles.sort(key=lambda p: p["engagement_score"], reverse=True)
    return profiles[:limit]


def latest_events(db: Session, limit: int = VISITOR_EVENTS_LIMIT) -> List[TrackingEvent]:
    return db.query(TrackingEvent).order_by(TrackingEvent.created_at.desc()).limit(limit).all()
