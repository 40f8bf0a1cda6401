"""
API routes.

Endpoints:
- POST `/api/markers`: main map entrypoint (score, arbitrate, declutter).
- POST `/api/analytics`: stability / ground / trend analytics over a weather history.
- GET  `/api/badges`: badge display metadata for map legends.
- GET  `/api/settings`: public settings for frontend defaults.
- GET  `/api/health`: liveness check.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from weatherscout import __version__
from weatherscout.badges.catalog import badge_metadata
from weatherscout.config.settings import get_settings
from weatherscout.domain.models import MapResult, MarkerRequest
from weatherscout.features.analytics import HistoryRecord, weather_analytics
from weatherscout.recommender.pipeline import build_map

logger = logging.getLogger(__name__)

router = APIRouter()


class AnalyticsRequest(BaseModel):
    records: list[HistoryRecord] = Field(default_factory=list)
    now: datetime | None = None


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok", "version": __version__}


@router.post("/api/markers", response_model=MapResult)
def post_markers(request: MarkerRequest) -> MapResult:
    """Run one map refresh and return the decluttered, badged marker list."""
    settings = get_settings()
    request_id = uuid.uuid4().hex[:12]
    t0 = time.monotonic()
    try:
        result = build_map(request, settings=settings)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        logger.exception("Map build failed (request_id=%s)", request_id)
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e
    debug = {"request_id": request_id, "api_ms": int((time.monotonic() - t0) * 1000)}
    return result.model_copy(update={"meta": {**(result.meta or {}), "debug": debug}})


@router.post("/api/analytics")
def post_analytics(request: AnalyticsRequest) -> dict:
    return weather_analytics(request.records, settings=get_settings(), now=request.now)


@router.get("/api/badges")
def get_badges() -> dict:
    """Return badge display metadata (icon, color, stacking priority, map visibility, caps)."""
    settings = get_settings()
    return {"badges": badge_metadata(settings=settings)}


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return tunable settings for frontend defaults (file paths removed)."""
    settings = get_settings()
    data = settings.model_dump(mode="json")
    return {
        "app": {"name": data["app"]["name"], "timezone": data["app"]["timezone"]},
        "weather": data["weather"],
        "badges": data["badges"],
        "selection": data["selection"],
    }
