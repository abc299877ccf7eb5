from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from campaign_tracker.db import get_db
from campaign_tracker.models.tracking import Campaign
from campaign_tracker.schemas.campaigns import CampaignIn, CampaignOut, UtmParams, UtmUrlOut
from campaign_tracker.services import campaigns as svc
from campaign_tracker.services.snippet import render_tracking_snippet

router = APIRouter()


def _out(campaign: Campaign) -> CampaignOut:
    out = CampaignOut.model_validate(campaign)
    out.tracking_url = svc.campaign_url(campaign)
    return out


@router.post("/utm-url", response_model=UtmUrlOut)
def build_url(params: UtmParams):
    """Preview a tagged URL without saving a campaign."""
    data = params.model_dump()
    url = data.pop("url")
    custom = data.pop("custom")
    return {"url": svc.build_utm_url(url, custom=custom, **data)}


@router.post("/campaigns", response_model=CampaignOut, status_code=201)
def create_campaign(payload: CampaignIn, db: Session = Depends(get_db)):
    return _out(svc.create_campaign(db, payload))


@router.get("/campaigns", response_model=List[CampaignOut])
def list_campaigns(
    user_id: Optional[str] = Query(default=None, max_length=64),
    db: Session = Depends(get_db),
):
    return [_out(c) for c in svc.list_campaigns(db, user_id=user_id)]


@router.get("/campaigns/{campaign_id}", response_model=CampaignOut)
def get_campaign(campaign_id: str, db: Session = Depends(get_db)):
    return _out(svc.get_campaign(db, campaign_id))


@router.delete("/campaigns/{campaign_id}", status_code=204)
def delete_campaign(campaign_id: str, db: Session = Depends(get_db)):
    svc.delete_campaign(db, campaign_id)
    return Response(status_code=204)


@router.get("/campaigns/{campaign_id}/snippet", response_class=PlainTextResponse)
def campaign_snippet(campaign_id: str, db: Session = Depends(get_db)):
    campaign = svc.get_campaign(db, campaign_id)
    return PlainTextResponse(
        render_tracking_snippet(campaign.id, campaign.name),
        media_type="application/javascript",
    )
