# campaign_tracker/routes/events.py
import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from campaign_tracker.core.errors import InvalidInput, RateLimited
from campaign_tracker.core.ratelimit import RateLimiter, get_rate_limiter
from campaign_tracker.db import get_db
from campaign_tracker.schemas.events import TrackEventOut
from campaign_tracker.services.events import ClientInfo, ingest_event, validate_event
from campaign_tracker.tracking_utils import client_ip_from_request, user_agent_from_request

logger = logging.getLogger(__name__)

router = APIRouter()

# The snippet runs on third-party pages, so this endpoint is open to every origin.
CORS_HEADERS = {
  "Access-Control-Allow-Origin": "*",
  "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
  "Access-Control-Allow-Methods": "POST, OPTIONS",
}


@router.options("/track-event")
def track_event_preflight():
  return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/track-event", response_model=TrackEventOut)
async def track_event(
  request: Request,
  db: Session = Depends(get_db),
  limiter: RateLimiter = Depends(get_rate_limiter),
):
  client_ip = client_ip_from_request(request)

  decision = limiter.hit(client_ip)
  if not decision.allowed:
    logger.warning("Rate limit exceeded for IP: %s", client_ip)
    raise RateLimited(decision.retry_after)

  try:
    body = json.loads(await request.body())
  except ValueError:
    raise InvalidInput([{"field": "body", "message": "Malformed JSON body", "code": "json_invalid"}])

  try:
    payload = validate_event(body)
  except InvalidInput as e:
    logger.warning(
      "Validation failed for IP %s: %s",
      client_ip,
      ", ".join(d["field"] for d in e.details),
    )
    raise

  logger.info(
    "Received tracking event from IP %s: type=%s visitor=%s page=%s",
    client_ip,
    payload.event_type,
    payload.visitor_id,
    payload.page_path,
  )

  client = ClientInfo(ip_address=client_ip, user_agent=user_agent_from_request(request))
  event_id = await run_in_threadpool(ingest_event, db, payload, client)

  logger.info("Tracking event inserted successfully: %s", event_id)
  return JSONResponse({"success": True, "event_id": event_id}, headers=CORS_HEADERS)
