# campaign_tracker/routes/analytics.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campaign_tracker.db import get_db
from campaign_tracker.services import analytics

router = APIRouter()


@router.get("/analytics/summary")
def summary(
  db: Session = Depends(get_db),
  range_key: Literal["24h", "7d", "30d", "90d"] = Query(default="7d", alias="range"),
  search: Optional[str] = Query(default=None, max_length=200),
  campaign_id: Optional[str] = None,
):
  events = analytics.fetch_events(db, range_key=range_key, search=search, campaign_id=campaign_id)
  out = analytics.summarize(events)
  out["range"] = range_key
  return out


@router.get("/analytics/live")
def live(db: Session = Depends(get_db)):
  return analytics.live_overview(db)


@router.get("/analytics/visitors")
def visitors(db: Session = Depends(get_db)):
  return {"visitors": analytics.visitor_profiles(analytics.latest_events(db))}
