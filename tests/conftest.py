from __future__ import annotations


import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from campaign_tracker.core.ratelimit import MemoryRateLimiter, get_rate_limiter
from campaign_tracker.db import Base, get_db, make_engine
from campaign_tracker.main import app
from campaign_tracker.models.tracking import Campaign, TrackingEvent, utcnow

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)
DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'tracker.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return MemoryRateLimiter(max_requests=100, window_seconds=60, clock=clock)


@pytest.fixture
def client(session_factory, limiter):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_campaign(db, **overrides) -> Campaign:
    data = dict(
        name="Spring sale",
        url="https://shop.example.com/landing",
        domain="shop.example.com",
        utm_source="google",
        utm_medium="cpc",
        utm_campaign="test",
    )
    data.update(overrides)
    campaign = Campaign(**data)
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


def make_event(db, campaign: Campaign, **overrides) -> TrackingEvent:
    data = dict(
        campaign_id=campaign.id,
        event_type="pageview",
        session_id="s1",
        visitor_id="v1",
        created_at=utcnow(),
    )
    data.update(overrides)
    event = TrackingEvent(**data)
    db.add(event)
    db.commit()
    return event


@pytest.fixture
def campaign(db) -> Campaign:
    return make_campaign(db)
