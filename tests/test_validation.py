import uuid

import pytest

from campaign_tracker.core.errors import InvalidInput
from campaign_tracker.services.events import validate_event


def _fields(exc_info):
    return {d["field"] for d in exc_info.value.details}


def test_minimal_pageview_is_valid():
    payload = validate_event({"event_type": "pageview"})
    assert payload.event_type == "pageview"
    assert payload.campaign_id is None
    assert payload.page_path is None


@pytest.mark.parametrize("body", [{}, {"event_type": None}, {"referrer": "https://a.example"}])
def test_missing_event_type_is_rejected(body):
    with pytest.raises(InvalidInput) as exc_info:
        validate_event(body)
    assert "event_type" in _fields(exc_info)


@pytest.mark.parametrize("value", ["purchase", "PAGEVIEW", "", 1])
def test_event_type_outside_enumeration_is_rejected(value):
    with pytest.raises(InvalidInput) as exc_info:
        validate_event({"event_type": value})
    assert _fields(exc_info) == {"event_type"}


@pytest.mark.parametrize(
    "field,limit",
    [
        ("referrer", 2048),
        ("utm_source", 255),
        ("utm_medium", 255),
        ("utm_campaign", 255),
        ("visitor_id", 255),
        ("page_path", 2048),
        ("element_selector", 500),
        ("element_text", 500),
        ("screen_recording_url", 2048),
    ],
)
def test_over_length_string_names_the_field(field, limit):
    validate_event({"event_type": "click", field: "x" * limit})

    with pytest.raises(InvalidInput) as exc_info:
        validate_event({"event_type": "click", field: "x" * (limit + 1)})
    assert _fields(exc_info) == {field}


def test_strings_are_trimmed_before_length_check():
    payload = validate_event({"event_type": "click", "utm_source": "   " + "g" * 255 + "\n"})
    assert payload.utm_source == "g" * 255


def test_campaign_id_must_be_uuid():
    with pytest.raises(InvalidInput) as exc_info:
        validate_event({"event_type": "click", "campaign_id": "campaign-42"})
    assert _fields(exc_info) == {"campaign_id"}

    cid = uuid.uuid4()
    assert validate_event({"event_type": "click", "campaign_id": str(cid)}).campaign_id == cid


def test_every_violation_is_reported():
    with pytest.raises(InvalidInput) as exc_info:
        validate_event(
            {
                "event_type": "purchase",
                "utm_source": "s" * 300,
                "campaign_id": "nope",
            }
        )
    assert _fields(exc_info) == {"event_type", "utm_source", "campaign_id"}
    for detail in exc_info.value.details:
        assert detail["message"]
        assert detail["code"]


def test_unknown_keys_and_nulls_are_ignored():
    payload = validate_event(
        {"event_type": "conversion", "timestamp": "2026-01-01T00:00:00Z", "referrer": None}
    )
    assert payload.referrer is None
    assert not hasattr(payload, "timestamp")


@pytest.mark.parametrize("body", [[], "pageview", 42, None])
def test_non_object_body_is_rejected(body):
    with pytest.raises(InvalidInput):
        validate_event(body)


def test_non_string_field_is_rejected():
    with pytest.raises(InvalidInput) as exc_info:
        validate_event({"event_type": "click", "visitor_id": 12345})
    assert _fields(exc_info) == {"visitor_id"}
