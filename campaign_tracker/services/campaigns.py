from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from campaign_tracker.core.errors import CampaignNotFound
from campaign_tracker.models.tracking import Campaign
from campaign_tracker.schemas.campaigns import CampaignIn

logger = logging.getLogger(__name__)

# query-string order used by the builder form
UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content", "utm_id")
CUSTOM_PARAM = "custom_param"


def build_utm_url(url: str, custom: Optional[str] = None, **utm: Optional[str]) -> str:
    params = [(k, utm[k]) for k in UTM_KEYS if utm.get(k)]
    if custom:
        params.append((CUSTOM_PARAM, custom))
    if not params:
        return url

    base, _, fragment = url.partition("#")
    sep = "&" if "?" in base else "?"
    if base.endswith(("?", "&")):
        sep = ""
    out = f"{base}{sep}{urlencode(params)}"
    return f"{out}#{fragment}" if fragment else out


def campaign_url(campaign: Campaign) -> str:
    return build_utm_url(
        campaign.url,
        custom=campaign.custom,
        **{k: getattr(campaign, k) for k in UTM_KEYS},
    )


def resolve_campaign_id(
    db: Session,
    campaign_id: Optional[str],
    utm_source: Optional[str] = None,
    utm_medium: Optional[str] = None,
    utm_campaign: Optional[str] = None,
    verify: bool = True,
) -> str:
    """
    Map an event to exactly one campaign.

    A supplied campaign_id wins. With verify=False it is trusted as-is and
    only the foreign key guards it. Otherwise the complete UTM triple must
    match exactly one stored campaign (exact, case-sensitive); no match or
    an ambiguous match raises CampaignNotFound.
    """
    if campaign_id:
        if verify and db.get(Campaign, campaign_id) is None:
            raise CampaignNotFound()
        return campaign_id

    if utm_source and utm_medium and utm_campaign:
        rows = (
            db.query(Campaign.id)
            .filter(
                Campaign.utm_source == utm_source,
                Campaign.utm_medium == utm_medium,
                Campaign.utm_campaign == utm_campaign,
            )
            .limit(2)
            .all()
        )
        if len(rows) == 1:
            return rows[0].id
        if len(rows) > 1:
            logger.warning(
                "Ambiguous UTM triple %s/%s/%s matches several campaigns",
                utm_source,
                utm_medium,
                utm_campaign,
            )

    raise CampaignNotFound()


def create_campaign(db: Session, data: CampaignIn) -> Campaign:
    campaign = Campaign(**data.model_dump(exclude_none=False))
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    logger.info("Created campaign %s (%s/%s/%s)", campaign.id, campaign.utm_source, campaign.utm_medium, campaign.utm_campaign)
    return campaign


def list_campaigns(db: Session, user_id: Optional[str] = None) -> List[Campaign]:
    q = db.query(Campaign)
    if user_id:
        q = q.filter(Campaign.user_id == user_id)
    return q.order_by(Campaign.created_at.desc()).all()


def get_campaign(db: Session, campaign_id: str) -> Campaign:
    campaign = db.get(Campaign, campaign_id)
    if campaign is None:
        raise CampaignNotFound()
    return campaign


def delete_campaign(db: Session, campaign_id: str) -> None:
    campaign = get_campaign(db, campaign_id)
    db.delete(campaign)
    db.commit()
    logger.info("Deleted campaign %s", campaign_id)
