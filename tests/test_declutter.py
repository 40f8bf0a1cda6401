from __future__ import annotations

import itertools

import pytest

from weatherscout.badges.arbiter import arbitrate_badges
from weatherscout.config.overrides import apply_settings_overrides
from weatherscout.config.settings import get_settings
from weatherscout.core.geo import LatLon, haversine_km
from weatherscout.domain.models import BadgeType, Candidate, GeoPoint, Origin, ScoredCandidate, Viewport
from weatherscout.scoring.engine import score_candidates
from weatherscout.selection.declutter import max_markers, min_marker_distance_km, select_markers, sort_for_display

ORIGIN = Origin(location=GeoPoint(lat=45.75, lon=9.75), temperature=5)


def _candidate(cid: str, lat: float, lon: float, **kwargs) -> Candidate:
    payload = {"id": cid, "name": cid, "location": GeoPoint(lat=lat, lon=lon), "temperature": 5}
    payload.update(kwargs)
    return Candidate(**payload)


def _grid_cluster(**kwargs) -> list[Candidate]:
    """36 points in one 250 km cell, ~24-33 km apart."""
    return [
        _candidate(f"g{i}{j}", 45.0 + 0.3 * i, 9.0 + 0.3 * j, **kwargs) for i in range(6) for j in range(6)
    ]


def _run(candidates, *, settings, zoom=8, radius_km=200.0, origin=ORIGIN):
    scored = arbitrate_badges(score_candidates(candidates, origin=origin, settings=settings), settings=settings)
    return select_markers(
        scored, origin=origin, viewport=Viewport(zoom_level=zoom, radius_km=radius_km), settings=settings
    )


@pytest.mark.parametrize(
    ("zoom", "radius_km", "expected"),
    [
        (3, 500, 25),  # 25 * 0.6 = 15 -> raised to the minimum
        (4, 1000, 50),
        (5, 1000, 75),
        (6, 510, 50),
        (8, 2000, 150),  # 200 -> capped
        (8, 10, 25),
    ],
)
def test_max_markers_table(zoom, radius_km, expected):
    assert max_markers(zoom, radius_km, settings=get_settings()) == expected


@pytest.mark.parametrize(("zoom", "expected"), [(1, 80), (4, 80), (5, 60), (6, 45), (7, 30), (8, 20), (15, 20)])
def test_min_marker_distance_by_zoom(zoom, expected):
    assert min_marker_distance_km(zoom, settings=get_settings()) == expected


def test_origin_comes_first_and_is_never_badged():
    settings = get_settings()
    outcome = _run(_grid_cluster(), settings=settings)
    first = outcome.markers[0]
    assert first.is_current_location
    assert first.selection == "origin"
    assert first.badges == []
    assert first.distance_km == 0.0


def test_grid_quota_limits_unbadged_markers_in_phase_two():
    settings = get_settings()
    # temp == origin temp, rainy: no candidate earns a badge
    outcome = _run(_grid_cluster(condition="rainy"), settings=settings)

    assert outcome.max_markers == 25
    assert outcome.phase1_slots == 10
    selections = [m.selection for m in outcome.markers]
    assert selections.count("phase1") == 9
    assert selections.count("phase2") == 0
    assert outcome.skipped_grid == 27
    assert len(outcome.markers) == 10


def test_badged_markers_bypass_the_grid_quota():
    settings = apply_settings_overrides(get_settings(), {"badges": {"warm_and_dry": {"cap": None}}})
    outcome = _run(_grid_cluster(temperature=15, condition="cloudy"), settings=settings)

    assert len(outcome.markers) == outcome.max_markers == 25
    assert outcome.skipped_grid == 0
    assert any(m.selection == "phase2" for m in outcome.markers)


def test_selected_markers_respect_min_distance():
    settings = get_settings()
    candidates = [_candidate(f"d{i}", 45.0 + 0.02 * i, 9.5, temperature=15) for i in range(60)]
    outcome = _run(candidates, settings=settings, zoom=6)

    spaced = [m for m in outcome.markers if m.selection in ("phase1", "phase2")]
    assert spaced
    for a, b in itertools.combinations(spaced, 2):
        d = haversine_km(LatLon(lat=a.location.lat, lon=a.location.lon), LatLon(lat=b.location.lat, lon=b.location.lon))
        assert d >= outcome.min_distance_km


def test_budget_holder_and_specials_are_always_included():
    settings = get_settings()
    candidates = [
        _candidate("special", 45.70, 9.70, is_special=True),
        # Closest warm spot: wins the Budget badge, sits inside the spacing radius of `special`.
        _candidate("budget", 45.72, 9.72, temperature=14),
        *_grid_cluster(condition="rainy"),
    ]
    outcome = _run(candidates, settings=settings)

    by_id = {m.id: m for m in outcome.markers}
    assert by_id["special"].selection == "special"
    assert by_id["budget"].selection == "exclusive"
    assert BadgeType.WORTH_THE_DRIVE_BUDGET in by_id["budget"].badges
    assert [m.id for m in outcome.markers[:3]] == ["origin", "special", "budget"]
    assert len(outcome.markers) <= outcome.max_markers


def test_markers_carry_metrics_and_map_glyphs():
    settings = get_settings()
    c = _candidate("warm", 45.2, 9.2, temperature=31, condition="sunny")
    outcome = _run([c], settings=settings)
    marker = next(m for m in outcome.markers if m.id == "warm")

    assert set(marker.metrics) == {b.value for b in BadgeType}
    assert "efficiency" in marker.metrics["WORTH_THE_DRIVE_BUDGET"]
    assert marker.metrics["WORTH_THE_DRIVE_BUDGET"]["eligible"] is True
    # map glyphs are the map-visible badges in priority order
    assert marker.map_badges[0] is BadgeType.WORTH_THE_DRIVE_BUDGET
    assert set(marker.map_badges) <= set(marker.badges)


def test_empty_input_yields_no_markers():
    outcome = _run([], settings=get_settings())
    assert outcome.markers == []


def _scored(cid: str, *, attractiveness: float, temperature: float, badges=(), distance_km=10.0) -> ScoredCandidate:
    return ScoredCandidate(
        candidate=_candidate(cid, 45.0, 9.0, temperature=temperature, attractiveness_score=attractiveness),
        distance_km=distance_km,
        weather_score=50,
        badges=list(badges),
    )


def test_sort_for_display_order_and_tolerances():
    settings = get_settings()
    items = [
        _scored("d", attractiveness=60, temperature=30),
        _scored("b", attractiveness=90, temperature=10),
        _scored("e", attractiveness=50, temperature=10, badges=[BadgeType.HEATWAVE]),  # detail-only
        _scored("c", attractiveness=88, temperature=20),  # within attractiveness tolerance of b
        _scored("a", attractiveness=50, temperature=10, badges=[BadgeType.WARM_AND_DRY]),
    ]
    assert [s.id for s in sort_for_display(items, settings=settings)] == ["a", "c", "b", "d", "e"]


def test_sort_for_display_breaks_full_ties_by_distance():
    settings = get_settings()
    items = [
        _scored("far", attractiveness=70, temperature=20, distance_km=90),
        _scored("near", attractiveness=71, temperature=21, distance_km=30),
    ]
    assert [s.id for s in sort_for_display(items, settings=settings)] == ["near", "far"]
