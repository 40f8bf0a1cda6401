"""
Spatial declutter selection (which markers the map shows).

From all scored + badged candidates, pick a bounded subset that stays readable at the
current zoom without losing scarce content:

1. The origin marker, always (no spacing check, never badged). No candidates means
   no markers at all.
2. Special candidates (`is_special`), always.
3. Holders of the exclusive Budget badge, always (they still count toward the cap).
4. Everything else in quality order:
   map-visible badge count desc -> attractiveness desc -> temperature desc -> distance asc
   (attractiveness/temperature differences inside the tie tolerance count as equal).
5. Phase 1 (first `floor(max_markers * phase1_ratio)` slots): min-distance check only.
6. Phase 2 (up to `max_markers`): min-distance check plus a per-grid-cell quota, which
   candidates with map-visible badges bypass.

Spacing and grid counts consider every accepted marker except the origin.
"""

from __future__ import annotations

import functools
import logging
import math
from dataclasses import dataclass, field

from weatherscout.badges.catalog import map_glyphs, map_visible_badges
from weatherscout.config.settings import Settings, ZoomStep
from weatherscout.core.spatial_index import SpatialGridIndex
from weatherscout.domain.models import (
    BadgeType,
    MapMarker,
    Origin,
    ScoredCandidate,
    SelectionReason,
    Viewport,
)
from weatherscout.features.weather import weather_score
from weatherscout.scoring.composite import clamp, round_half_up

logger = logging.getLogger(__name__)


def _lookup_zoom(table: list[ZoomStep], zoom_level: int, default: float) -> float:
    for step in table:
        if zoom_level <= step.max_zoom:
            return float(step.value)
    return float(default)


def max_markers(zoom_level: int, radius_km: float, *, settings: Settings) -> int:
    """Marker budget: `round(clamp(floor(radius / km_per_marker) * zoom_factor, min, max))`."""
    cfg = settings.selection
    base = math.floor(float(radius_km) / cfg.radius_km_per_marker)
    factor = _lookup_zoom(cfg.zoom_factors, zoom_level, cfg.default_zoom_factor)
    return int(round_half_up(clamp(base * factor, cfg.min_markers, cfg.max_markers)))


def min_marker_distance_km(zoom_level: int, *, settings: Settings) -> float:
    cfg = settings.selection
    return _lookup_zoom(cfg.min_distance_km_by_zoom, zoom_level, cfg.default_min_distance_km)


@dataclass
class SelectionOutcome:
    markers: list[MapMarker]
    max_markers: int
    min_distance_km: float
    phase1_slots: int
    skipped_spacing: int = 0
    skipped_grid: int = 0
    cells_used: dict[str, int] = field(default_factory=dict)


def _compare(a: ScoredCandidate, b: ScoredCandidate, *, settings: Settings) -> int:
    cfg = settings.selection
    a_badges = len(map_visible_badges(a.badges, settings=settings))
    b_badges = len(map_visible_badges(b.badges, settings=settings))
    if a_badges != b_badges:
        return b_badges - a_badges

    default_attr = settings.weather.default_attractiveness
    a_attr = a.candidate.attractiveness_score if a.candidate.attractiveness_score is not None else default_attr
    b_attr = b.candidate.attractiveness_score if b.candidate.attractiveness_score is not None else default_attr
    if abs(a_attr - b_attr) > cfg.attractiveness_tie_tolerance:
        return -1 if a_attr > b_attr else 1

    a_temp = a.candidate.temperature
    b_temp = b.candidate.temperature
    if abs(a_temp - b_temp) > cfg.temperature_tie_tolerance_c:
        return -1 if a_temp > b_temp else 1

    if a.distance_km != b.distance_km:
        return -1 if a.distance_km < b.distance_km else 1
    return 0


def sort_for_display(scored: list[ScoredCandidate], *, settings: Settings) -> list[ScoredCandidate]:
    """Quality order used by both selection phases (stable for exact ties)."""
    return sorted(scored, key=functools.cmp_to_key(functools.partial(_compare, settings=settings)))


def candidate_marker(s: ScoredCandidate, *, selection: SelectionReason, settings: Settings) -> MapMarker:
    c = s.candidate
    metrics = {
        badge.value: {**evaluation.details, "eligible": evaluation.eligible, "rank_score": evaluation.rank_score}
        for badge, evaluation in s.evaluations.items()
    }
    return MapMarker(
        id=c.id,
        name=c.name,
        location=c.location,
        temperature=c.temperature,
        condition=c.condition,
        country_code=c.country_code,
        distance_km=s.distance_km,
        weather_score=s.weather_score,
        badges=list(s.badges),
        map_badges=map_glyphs(s.badges, settings=settings),
        metrics=metrics,
        selection=selection,
    )


def origin_marker(origin: Origin, *, settings: Settings) -> MapMarker:
    return MapMarker(
        id=origin.id,
        name=origin.name,
        location=origin.location,
        temperature=origin.temperature,
        condition=origin.condition,
        country_code=origin.country_code,
        distance_km=0.0,
        weather_score=weather_score(origin, settings=settings),
        is_current_location=True,
        selection="origin",
    )


def select_markers(
    scored: list[ScoredCandidate],
    *,
    origin: Origin,
    viewport: Viewport,
    settings: Settings,
) -> SelectionOutcome:
    cfg = settings.selection
    limit = max_markers(viewport.zoom_level, viewport.radius_km, settings=settings)
    min_distance = min_marker_distance_km(viewport.zoom_level, settings=settings)
    phase1_slots = math.floor(limit * cfg.phase1_ratio)

    if not scored:
        return SelectionOutcome(markers=[], max_markers=limit, min_distance_km=min_distance, phase1_slots=phase1_slots)

    def _latlon(s: ScoredCandidate) -> tuple[float, float]:
        return s.candidate.location.lat, s.candidate.location.lon

    spacing_index: SpatialGridIndex[ScoredCandidate] = SpatialGridIndex(
        get_latlon=_latlon, cell_size_km=max(min_distance, 1.0), km_per_degree=cfg.km_per_degree
    )
    grid: SpatialGridIndex[ScoredCandidate] = SpatialGridIndex(
        get_latlon=_latlon, cell_size_km=cfg.grid_cell_size_km, km_per_degree=cfg.km_per_degree
    )

    outcome = SelectionOutcome(
        markers=[origin_marker(origin, settings=settings)],
        max_markers=limit,
        min_distance_km=min_distance,
        phase1_slots=phase1_slots,
    )

    def _accept(s: ScoredCandidate, reason: SelectionReason) -> None:
        outcome.markers.append(candidate_marker(s, selection=reason, settings=settings))
        spacing_index.add(s)
        grid.add(s)

    # Mandatory markers: no spacing, grid or ordering checks.
    remaining: list[ScoredCandidate] = []
    for s in scored:
        if s.candidate.is_special:
            _accept(s, "special")
    for s in scored:
        if s.candidate.is_special:
            continue
        if BadgeType.WORTH_THE_DRIVE_BUDGET in s.badges:
            _accept(s, "exclusive")
        else:
            remaining.append(s)

    for s in sort_for_display(remaining, settings=settings):
        if len(outcome.markers) >= limit:
            break
        lat, lon = _latlon(s)
        if spacing_index.any_closer_than(lat=lat, lon=lon, distance_km=min_distance):
            outcome.skipped_spacing += 1
            continue
        if len(outcome.markers) < phase1_slots:
            _accept(s, "phase1")
            continue
        has_badges = bool(map_visible_badges(s.badges, settings=settings))
        if not has_badges and grid.count_in_cell(grid.cell_key(lat, lon)) >= cfg.grid_cell_quota:
            outcome.skipped_grid += 1
            continue
        _accept(s, "phase2")

    for m in outcome.markers[1:]:
        key = grid.cell_key(m.location.lat, m.location.lon)
        label = f"{key[0]},{key[1]}"
        outcome.cells_used[label] = outcome.cells_used.get(label, 0) + 1

    logger.debug(
        "Selected %d/%d markers (limit=%d, min_distance=%.0fkm, spacing_skips=%d, grid_skips=%d)",
        len(outcome.markers),
        len(scored) + 1,
        limit,
        min_distance,
        outcome.skipped_spacing,
        outcome.skipped_grid,
    )
    return outcome
