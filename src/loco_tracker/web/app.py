"""FastAPI Web application — live loco position plus recent trail."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from loco_tracker.exceptions import TrackingError
from loco_tracker.web.schemas import (
    ErrorResponse,
    HealthResponse,
    TrackRequest,
    TrackResponse,
)
from loco_tracker.web.service import TrackingService

load_dotenv()  # loads .env from project root; must run before env vars are consumed

_logger = logging.getLogger(__name__)

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(title="Loco Tracker", version=_VERSION)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=_VERSION)


@app.post(
    "/api/track-loco",
    response_model=TrackResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 404, 500)},
)
def track_loco(req: TrackRequest):
    """Reconcile the loco's live position with its stored trail."""
    try:
        svc = TrackingService()
        snapshot = svc.track(req.loco_id)
    except TrackingError as exc:
        if exc.status_code >= 500:
            _logger.error("Tracking failed for loco %r: %s", req.loco_id, exc)
        return _error(exc.status_code, str(exc))
    except Exception as exc:
        _logger.exception("API route error for loco %r", req.loco_id)
        return _error(500, str(exc) or "An unknown error occurred")

    return TrackResponse.from_snapshot(snapshot)
