from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class TrackingError(Exception):
    """Base for every failure the ingestion pipeline reports to the caller."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidInput(TrackingError):
    status_code = 400
    message = "Invalid input"

    def __init__(self, details: Optional[List[Dict[str, Any]]] = None, message: Optional[str] = None):
        super().__init__(message)
        self.details = details or []

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class RateLimited(TrackingError):
    status_code = 429
    message = "Rate limit exceeded. Please try again later."

    def __init__(self, retry_after: int = 60):
        super().__init__()
        self.retry_after = retry_after


class CampaignNotFound(TrackingError):
    status_code = 404
    message = "Campaign not found"


class StorageFailure(TrackingError):
    status_code = 500
    message = "Failed to store tracking event"


def validation_details(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flatten pydantic error dicts into {field, message, code}.
    The "body" prefix FastAPI adds to request-body locations is dropped.
    """
    out: List[Dict[str, Any]] = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        out.append(
            {
                "field": ".".join(loc) or "body",
                "message": err.get("msg", "Invalid value"),
                "code": err.get("type", "value_error"),
            }
        )
    return out
