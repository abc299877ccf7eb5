import uuid

import pytest

from campaign_tracker.core.config import settings
from campaign_tracker.models.tracking import TrackingEvent
from conftest import DESKTOP_CHROME_UA, IPHONE_UA

URL = "/api/track-event"


def _events(session_factory):
    with session_factory() as s:
        return s.query(TrackingEvent).order_by(TrackingEvent.created_at).all()


def test_bare_preflight_is_acknowledged(client):
    r = client.options(URL)
    assert r.status_code == 200
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "*"


def test_browser_preflight(client):
    r = client.options(
        URL,
        headers={
            "Origin": "https://landing.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert r.status_code == 200
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "*"
    assert "POST" in r.headers["access-control-allow-methods"]


def test_pageview_by_utm_triple(client, campaign, session_factory):
    r = client.post(
        URL,
        json={"event_type": "pageview", "utm_source": "google", "utm_medium": "cpc", "utm_campaign": "test"},
        headers={"User-Agent": IPHONE_UA, "X-Forwarded-For": "203.0.113.5"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert r.headers["access-control-allow-origin"] == "*"

    [row] = _events(session_factory)
    assert row.id == body["event_id"]
    assert row.campaign_id == campaign.id
    assert row.event_type == "pageview"
    assert row.device_type == "mobile"
    assert row.browser == "Safari"
    assert row.user_agent == IPHONE_UA
    assert row.ip_address == "203.0.113.5"
    assert row.page_path is None
    assert row.utm_source == "google"


def test_direct_campaign_id(client, campaign, session_factory):
    r = client.post(
        URL,
        json={"event_type": "click", "campaign_id": campaign.id, "visitor_id": "v_42"},
        headers={"User-Agent": DESKTOP_CHROME_UA},
    )
    assert r.status_code == 200

    [row] = _events(session_factory)
    assert row.campaign_id == campaign.id
    assert row.device_type == "desktop"
    assert row.browser == "Chrome"
    assert row.session_id == "v_42"
    assert row.visitor_id == "v_42"


def test_anonymous_event_gets_generated_session(client, campaign, session_factory):
    client.post(URL, json={"event_type": "click", "campaign_id": campaign.id})

    [row] = _events(session_factory)
    uuid.UUID(row.session_id)
    assert row.visitor_id == row.session_id


def test_separate_identity_policy(client, campaign, session_factory, monkeypatch):
    monkeypatch.setattr(settings, "session_identity", "separate")
    client.post(URL, json={"event_type": "click", "campaign_id": campaign.id, "visitor_id": "v_42"})
    client.post(URL, json={"event_type": "click", "campaign_id": campaign.id})

    first, second = _events(session_factory)
    assert {first.visitor_id, second.visitor_id} == {"v_42", None}
    assert "v_42" not in {first.session_id, second.session_id}


def test_missing_user_agent_is_unknown(client, campaign, session_factory):
    client.post(URL, json={"event_type": "click", "campaign_id": campaign.id}, headers={"User-Agent": ""})
    [row] = _events(session_factory)
    assert row.user_agent == "Unknown"
    assert row.device_type == "desktop"
    assert row.browser == "Other"


def test_free_text_is_sanitized_before_storage(client, campaign, session_factory):
    r = client.post(
        URL,
        json={
            "event_type": "click",
            "campaign_id": campaign.id,
            "page_path": "https://shop.example.com/checkout?email=a@b.com#step2",
            "element_text": "Email jane@shop.example.com or call 555-123-4567",
            "element_selector": "BUTTON#buy",
        },
    )
    assert r.status_code == 200

    [row] = _events(session_factory)
    assert row.page_path == "/checkout"
    assert row.element_text == "Email [email] or call [phone]"
    assert row.element_selector == "BUTTON#buy"


def test_identical_posts_store_two_events(client, campaign, session_factory):
    payload = {"event_type": "pageview", "campaign_id": campaign.id, "visitor_id": "v_1"}
    first = client.post(URL, json=payload).json()
    second = client.post(URL, json=payload).json()

    assert first["event_id"] != second["event_id"]
    assert len(_events(session_factory)) == 2


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"utm_source": "google"}, "event_type"),
        ({"event_type": "purchase"}, "event_type"),
        ({"event_type": "click", "utm_source": "x" * 256}, "utm_source"),
        ({"event_type": "click", "referrer": "r" * 2049}, "referrer"),
        ({"event_type": "click", "campaign_id": "123"}, "campaign_id"),
    ],
)
def test_invalid_input(client, campaign, session_factory, payload, field):
    r = client.post(URL, json=payload)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Invalid input"
    assert field in {d["field"] for d in body["details"]}
    assert _events(session_factory) == []


def test_malformed_json(client):
    r = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid input"


def test_unmatched_utm_triple_is_not_found(client, campaign, session_factory):
    r = client.post(
        URL,
        json={"event_type": "pageview", "utm_source": "bing", "utm_medium": "cpc", "utm_campaign": "test"},
    )
    assert r.status_code == 404
    assert r.json() == {"error": "Campaign not found"}
    assert _events(session_factory) == []


def test_no_campaign_reference_is_not_found(client, campaign):
    r = client.post(URL, json={"event_type": "pageview"})
    assert r.status_code == 404


def test_unknown_campaign_id_is_not_found(client, campaign):
    r = client.post(URL, json={"event_type": "pageview", "campaign_id": str(uuid.uuid4())})
    assert r.status_code == 404


def test_trusted_unknown_campaign_id_fails_on_foreign_key(client, campaign, session_factory, monkeypatch):
    monkeypatch.setattr(settings, "verify_campaign_id", False)
    r = client.post(URL, json={"event_type": "pageview", "campaign_id": str(uuid.uuid4())})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to store tracking event"}
    assert _events(session_factory) == []


def test_rate_limit_per_client(client, clock):
    headers = {"X-Forwarded-For": "198.51.100.23"}
    for _ in range(100):
        assert client.post(URL, json={}, headers=headers).status_code == 400

    r = client.post(URL, json={}, headers=headers)
    assert r.status_code == 429
    assert r.json()["error"].startswith("Rate limit exceeded")
    assert r.headers["retry-after"] == "60"
    assert r.headers["access-control-allow-origin"] == "*"

    # other clients are unaffected
    assert client.post(URL, json={}, headers={"X-Forwarded-For": "198.51.100.24"}).status_code == 400

    clock.advance(60)
    assert client.post(URL, json={}, headers=headers).status_code == 400


def test_rate_limit_runs_before_parsing(client):
    headers = {"X-Forwarded-For": "198.51.100.99"}
    for _ in range(100):
        client.post(URL, json={}, headers=headers)
    r = client.post(URL, content=b"garbage", headers=headers)
    assert r.status_code == 429
