"""
Scoring engine: per-candidate weather score + badge evaluations.

Pure functions; candidates are never mutated. Distance comes from the candidate record
when the source already computed it, otherwise from the origin (haversine).
"""

from __future__ import annotations

from weatherscout.config.settings import Settings
from weatherscout.core.geo import LatLon, haversine_km
from weatherscout.domain.models import Candidate, Origin, ScoredCandidate
from weatherscout.features.badges import evaluate_badges
from weatherscout.features.weather import ForecastLookup, weather_score


def distance_from_origin(candidate: Candidate, origin: Origin) -> float:
    if candidate.distance_km is not None:
        return float(candidate.distance_km)
    return haversine_km(
        LatLon(lat=origin.location.lat, lon=origin.location.lon),
        LatLon(lat=candidate.location.lat, lon=candidate.location.lon),
    )


def score_candidate(
    candidate: Candidate,
    *,
    origin: Origin,
    settings: Settings,
    forecast_lookup: ForecastLookup | None = None,
) -> ScoredCandidate:
    distance = distance_from_origin(candidate, origin)
    return ScoredCandidate(
        candidate=candidate,
        distance_km=distance,
        weather_score=weather_score(candidate, settings=settings),
        evaluations=evaluate_badges(
            candidate, origin=origin, distance_km=distance, settings=settings, forecast_lookup=forecast_lookup
        ),
    )


def score_candidates(
    candidates: list[Candidate],
    *,
    origin: Origin,
    settings: Settings,
    forecast_lookup: ForecastLookup | None = None,
) -> list[ScoredCandidate]:
    return [
        score_candidate(c, origin=origin, settings=settings, forecast_lookup=forecast_lookup) for c in candidates
    ]
