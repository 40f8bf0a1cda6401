from __future__ import annotations

# This module is the orchestrator for one map refresh. It wires together:
# - request input (MarkerRequest: origin, viewport, optional inline candidates)
# - the candidate source (inline rows or the local catalog)
# - scoring (weather score + per-badge rules)
# - badge arbitration (caps, spacing, winner-take-all)
# - spatial declutter selection (bounded marker list)
#
# Everything here is synchronous and side-effect free apart from logging. Data problems
# never raise: they degrade the result and show up in `meta["warnings"]`.

import logging
import time
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from weatherscout.badges.arbiter import arbitrate_badges, badge_counts
from weatherscout.catalog.loader import load_catalog_rows, parse_candidates
from weatherscout.config.overrides import apply_settings_overrides
from weatherscout.config.settings import Settings, get_settings
from weatherscout.core.geo import LatLon, haversine_km
from weatherscout.domain.models import Candidate, MapResult, MarkerRequest, Origin, Viewport
from weatherscout.features.weather import ForecastLookup
from weatherscout.scoring.engine import score_candidates
from weatherscout.selection.declutter import select_markers

logger = logging.getLogger(__name__)


def resolve_origin(origin: Origin, candidates: list[Candidate], *, settings: Settings) -> Origin:
    """Return `origin` if it carries weather, else a synthetic one at the same position.

    The synthetic origin uses the mean candidate temperature (or the configured fallback
    when there are no candidates) and otherwise neutral weather.
    """
    if origin.has_weather:
        return origin
    if candidates:
        temperature = sum(c.temperature for c in candidates) / len(candidates)
    else:
        temperature = settings.weather.fallback_origin_temperature_c
    return origin.model_copy(update={"temperature": temperature, "synthetic": True})


def filter_by_condition(candidates: list[Candidate], condition: str | None) -> list[Candidate]:
    """Case-insensitive condition filter; `None`/empty means no filtering."""
    if not condition:
        return candidates
    wanted = condition.strip().lower()
    return [c for c in candidates if (c.condition or "").lower() == wanted]


def filter_to_viewport(candidates: list[Candidate], *, origin: Origin, viewport: Viewport) -> list[Candidate]:
    """Keep candidates inside the search radius (and the visible bounds, when given)."""
    center = LatLon(lat=origin.location.lat, lon=origin.location.lon)
    kept: list[Candidate] = []
    for c in candidates:
        distance = c.distance_km
        if distance is None:
            distance = haversine_km(center, LatLon(lat=c.location.lat, lon=c.location.lon))
        if distance > viewport.radius_km:
            continue
        if viewport.bounds is not None and not viewport.bounds.contains(c.location):
            continue
        kept.append(c if c.distance_km is not None else c.model_copy(update={"distance_km": distance}))
    return kept


def build_map(
    request: MarkerRequest,
    *,
    settings: Settings | None = None,
    candidates: list[Candidate] | None = None,
    forecast_lookup: ForecastLookup | None = None,
) -> MapResult:
    t0 = time.monotonic()
    timings_ms: dict[str, int] = {}
    warnings: list[dict[str, Any]] = []

    # ---- Step 1: Resolve settings for THIS run (per-request overrides are isolated) ----
    settings = settings or get_settings()
    settings = apply_settings_overrides(settings, request.settings_overrides)

    # ---- Step 2: Candidate source: injected list > inline rows > local catalog ----
    dropped = 0
    if candidates is None:
        rows = request.candidates if request.candidates is not None else load_catalog_rows(settings.catalog.path)
        candidates, dropped = parse_candidates(rows, settings=settings)
    if dropped:
        warnings.append(
            {
                "code": "CANDIDATES_DROPPED_NO_TEMPERATURE",
                "message": "Some candidates had no temperature and were skipped.",
                "detail": {"count": dropped},
            }
        )
    timings_ms["load_candidates"] = int((time.monotonic() - t0) * 1000)

    # ---- Step 3: Prefilter (condition, radius, bounds) ----
    total_candidates = len(candidates)
    candidates = filter_by_condition(candidates, request.condition_filter)
    candidates = filter_to_viewport(candidates, origin=request.origin, viewport=request.viewport)

    # ---- Step 4: Origin (synthetic when weather is missing) ----
    origin = resolve_origin(request.origin, candidates, settings=settings)
    if origin.synthetic:
        warnings.append(
            {
                "code": "ORIGIN_SYNTHESIZED",
                "message": "Origin weather unavailable; using the mean candidate temperature.",
                "detail": {"temperature": origin.temperature},
            }
        )

    # ---- Step 5: Score -> arbitrate -> select ----
    t_score = time.monotonic()
    scored = score_candidates(candidates, origin=origin, settings=settings, forecast_lookup=forecast_lookup)
    timings_ms["score"] = int((time.monotonic() - t_score) * 1000)

    t_arb = time.monotonic()
    badged = arbitrate_badges(scored, settings=settings)
    timings_ms["arbitrate"] = int((time.monotonic() - t_arb) * 1000)

    t_sel = time.monotonic()
    outcome = select_markers(badged, origin=origin, viewport=request.viewport, settings=settings)
    timings_ms["select"] = int((time.monotonic() - t_sel) * 1000)
    timings_ms["total"] = int((time.monotonic() - t0) * 1000)

    logger.info(
        "Map built: %d/%d candidates in view, %d markers (limit %d)",
        len(candidates),
        total_candidates,
        len(outcome.markers),
        outcome.max_markers,
    )

    meta = {
        "counts": {
            "candidates_total": total_candidates,
            "candidates_in_view": len(candidates),
            "candidates_dropped_no_temperature": dropped,
            "markers": len(outcome.markers),
        },
        "badges": badge_counts(badged),
        "selection": {
            "max_markers": outcome.max_markers,
            "min_distance_km": outcome.min_distance_km,
            "phase1_slots": outcome.phase1_slots,
            "skipped_spacing": outcome.skipped_spacing,
            "skipped_grid": outcome.skipped_grid,
            "cells_used": outcome.cells_used,
        },
        "origin": {"synthetic": origin.synthetic, "temperature": origin.temperature},
        "settings_snapshot": {
            "overrides_enabled": bool(request.settings_overrides),
            "settings_overrides": request.settings_overrides or None,
            "condition_filter": request.condition_filter,
        },
        "warnings": warnings,
        "timings_ms": timings_ms,
    }

    return MapResult(
        generated_at=datetime.now(ZoneInfo(settings.app.timezone)),
        markers=outcome.markers,
        meta=meta,
    )
