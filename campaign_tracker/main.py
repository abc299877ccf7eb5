# campaign_tracker/main.py

from __future__ import annotations

import logging

from dotenv import load_dotenv

# -----------------------------------------------------------------------------
# Load .env (MUST be before importing anything that reads settings)
# -----------------------------------------------------------------------------
load_dotenv()

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from campaign_tracker.core.config import settings  # noqa: E402
from campaign_tracker.core.cors import DashboardCORSMiddleware  # noqa: E402
from campaign_tracker.core.errors import (  # noqa: E402
    InvalidInput,
    RateLimited,
    TrackingError,
    validation_details,
)
from campaign_tracker.db import Base, engine  # noqa: E402
from campaign_tracker.models import tracking  # noqa: E402,F401  (registers tables)
from campaign_tracker.routes.analytics import router as analytics_router  # noqa: E402
from campaign_tracker.routes.campaigns import router as campaigns_router  # noqa: E402
from campaign_tracker.routes.events import CORS_HEADERS, router as events_router  # noqa: E402
from campaign_tracker.services.snippet import TRACK_EVENT_PATH  # noqa: E402
from campaign_tracker.tracking_utils import client_ip_from_request  # noqa: E402

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("campaign_tracker")

# -----------------------------------------------------------------------------
# Create app
# -----------------------------------------------------------------------------
app = FastAPI(title=settings.app_name, version="0.3.0")

# -----------------------------------------------------------------------------
# CORS (dashboard API; the ingestion endpoint handles its own)
# -----------------------------------------------------------------------------
app.add_middleware(
    DashboardCORSMiddleware,
    public_paths=[TRACK_EVENT_PATH],
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# -----------------------------------------------------------------------------
# DB init
# -----------------------------------------------------------------------------
@app.on_event("startup")
def _startup_create_tables():
    # create tables if they don't exist; no migrations yet
    Base.metadata.create_all(bind=engine)


# -----------------------------------------------------------------------------
# Error responses: {"error": ...} bodies, always with CORS headers
# -----------------------------------------------------------------------------
@app.exception_handler(TrackingError)
async def _tracking_error_handler(request: Request, exc: TrackingError):
    headers = dict(CORS_HEADERS)
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after)
    if exc.status_code >= 500:
        logger.error("%s %s failed for %s: %s", request.method, request.url.path, client_ip_from_request(request), exc.message)
    elif not isinstance(exc, (RateLimited, InvalidInput)):
        # rate-limit and validation rejections are logged where they happen
        logger.warning("%s %s rejected for %s: %s", request.method, request.url.path, client_ip_from_request(request), exc.message)
    return JSONResponse(exc.to_body(), status_code=exc.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError):
    err = InvalidInput(validation_details(exc.errors()))
    return JSONResponse(err.to_body(), status_code=err.status_code, headers=CORS_HEADERS)


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    message = str(exc) or "Unknown error occurred"
    return JSONResponse({"error": message}, status_code=500, headers=CORS_HEADERS)


# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
app.include_router(events_router, prefix="/api", tags=["events"])
app.include_router(campaigns_router, prefix="/api", tags=["campaigns"])
app.include_router(analytics_router, prefix="/api", tags=["analytics"])


# -----------------------------------------------------------------------------
# Basic health check
# -----------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}
