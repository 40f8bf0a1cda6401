from __future__ import annotations

import itertools

from weatherscout.badges.arbiter import arbitrate_badges, badge_counts
from weatherscout.config.overrides import apply_settings_overrides
from weatherscout.config.settings import get_settings
from weatherscout.core.geo import LatLon, haversine_km
from weatherscout.domain.models import BadgeType, Candidate, DayForecast, Forecast, GeoPoint, Origin
from weatherscout.scoring.engine import score_candidates

ORIGIN = Origin(location=GeoPoint(lat=50.0, lon=8.0), temperature=5)


def _candidate(cid: str, lat: float, lon: float, **kwargs) -> Candidate:
    payload = {"id": cid, "name": cid, "location": GeoPoint(lat=lat, lon=lon), "temperature": 20}
    payload.update(kwargs)
    return Candidate(**payload)


def _holders(scored, badge: BadgeType) -> list[str]:
    return [s.id for s in scored if badge in s.badges]


def _sunny_week(temp: float) -> Forecast:
    return Forecast(
        tomorrow=DayForecast(condition="sunny", temp=temp),
        day3=DayForecast(condition="sunny", temp=temp),
    )


def test_budget_winner_take_all_prefers_efficiency():
    settings = get_settings()
    candidates = [
        _candidate("b", 50.0, 9.0, temperature=20, distance_km=50),
        _candidate("c", 50.5, 8.0, temperature=18, distance_km=20),
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)

    assert _holders(scored, BadgeType.WORTH_THE_DRIVE_BUDGET) == ["c"]
    by_id = {s.id: s for s in scored}
    assert by_id["b"].evaluations[BadgeType.WORTH_THE_DRIVE_BUDGET].rank_score == 0.30
    assert by_id["c"].evaluations[BadgeType.WORTH_THE_DRIVE_BUDGET].rank_score == 0.65


def test_budget_winner_never_holds_worth_the_drive():
    settings = get_settings()
    # A single strong candidate is eligible for both; Budget runs first and wins.
    scored = arbitrate_badges(
        score_candidates(
            [_candidate("a", 47.5, 8.0, temperature=25, condition="sunny", distance_km=300)],
            origin=ORIGIN,
            settings=settings,
        ),
        settings=settings,
    )
    a = scored[0]
    assert a.is_eligible(BadgeType.WORTH_THE_DRIVE)
    assert a.badges[0] is BadgeType.WORTH_THE_DRIVE_BUDGET
    assert BadgeType.WORTH_THE_DRIVE not in a.badges


def test_worth_the_drive_cap_and_spacing():
    settings = get_settings()
    candidates = [
        # Budget magnet close to home so the others stay in the Worth the Drive pool.
        _candidate("budget", 50.1, 8.0, temperature=14, distance_km=11),
        _candidate("w1", 47.00, 8.00, temperature=27, condition="sunny", distance_km=300),
        _candidate("w1-near", 47.05, 8.00, temperature=26, condition="sunny", distance_km=300),  # ~5.6 km from w1
        _candidate("w2", 47.00, 9.00, temperature=25, condition="sunny", distance_km=300),
        _candidate("w3", 47.00, 10.0, temperature=24, condition="sunny", distance_km=300),
        _candidate("w4", 47.00, 11.0, temperature=23, condition="sunny", distance_km=300),
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)

    assert _holders(scored, BadgeType.WORTH_THE_DRIVE_BUDGET) == ["budget"]
    assert _holders(scored, BadgeType.WORTH_THE_DRIVE) == ["w1", "w2", "w3"]


def test_sunny_streak_holders_stay_spaced_in_dense_cluster():
    settings = get_settings()
    candidates = [
        _candidate(f"s{i}", 45.0 + 0.05 * i, 5.0, temperature=20, condition="sunny", forecast=_sunny_week(20))
        for i in range(30)
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)

    holders = [s for s in scored if BadgeType.SUNNY_STREAK in s.badges]
    assert 1 <= len(holders) <= 10
    for a, b in itertools.combinations(holders, 2):
        d = haversine_km(
            LatLon(lat=a.candidate.location.lat, lon=a.candidate.location.lon),
            LatLon(lat=b.candidate.location.lat, lon=b.candidate.location.lon),
        )
        assert d >= 20


def test_sunny_streak_cap_with_well_spaced_candidates():
    settings = get_settings()
    candidates = [
        _candidate(f"s{i}", 40.0 + i, 5.0, temperature=20, condition="sunny", forecast=_sunny_week(20))
        for i in range(15)
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)

    assert all(s.is_eligible(BadgeType.SUNNY_STREAK) for s in scored)
    assert len(_holders(scored, BadgeType.SUNNY_STREAK)) == 10


def test_caps_hold_for_warm_and_dry_and_beach():
    settings = get_settings()
    candidates = [
        _candidate(f"p{i}", 40.0 + i, -3.0 + (i % 5), temperature=25 + (i % 5), condition="sunny", wind_speed=5)
        for i in range(25)
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)
    counts = badge_counts(scored)

    assert counts["WARM_AND_DRY"] == 10
    assert counts["BEACH_PARADISE"] == 10
    assert counts["WORTH_THE_DRIVE_BUDGET"] <= 1
    assert counts["WORTH_THE_DRIVE"] <= 3


def test_warm_and_dry_goes_to_the_warmest():
    settings = apply_settings_overrides(get_settings(), {"badges": {"warm_and_dry": {"cap": 2}}})
    candidates = [
        _candidate("mild", 40.0, 0.0, temperature=15),
        _candidate("hot", 41.0, 0.0, temperature=29),
        _candidate("warm", 42.0, 0.0, temperature=22),
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)
    assert sorted(_holders(scored, BadgeType.WARM_AND_DRY)) == ["hot", "warm"]


def test_snow_king_per_country_cap():
    settings = get_settings()
    candidates = [
        _candidate(
            f"{cc}{i}",
            46.0 + i * 0.5,
            7.0 + (0 if cc == "CH" else 3),
            temperature=-6,
            condition="snowy",
            snowfall_24h_mm=12,
            country_code=cc,
        )
        for cc in ("CH", "AT")
        for i in range(5)
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)

    holders = [s for s in scored if BadgeType.SNOW_KING in s.badges]
    per_country: dict[str, int] = {}
    for s in holders:
        per_country[s.candidate.country_code] = per_country.get(s.candidate.country_code, 0) + 1
    assert per_country == {"CH": 3, "AT": 3}


def test_snow_king_total_cap_across_countries():
    settings = get_settings()
    countries = ("CH", "AT", "FR", "IT", "DE")
    candidates = [
        _candidate(
            f"{cc}{i}",
            40.0 + i,
            2.0 * k,
            temperature=-6,
            condition="snowy",
            snowfall_24h_mm=12,
            country_code=cc,
        )
        for k, cc in enumerate(countries)
        for i in range(4)
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)

    holders = [s for s in scored if BadgeType.SNOW_KING in s.badges]
    assert len(holders) == 10
    per_country: dict[str, int] = {}
    for s in holders:
        per_country[s.candidate.country_code] = per_country.get(s.candidate.country_code, 0) + 1
    assert max(per_country.values()) <= 3
    assert badge_counts(scored)["SNOW_KING"] == 10


def test_detail_only_badges_are_uncapped():
    settings = get_settings()
    candidates = [
        _candidate(
            f"m{i}",
            40.0 + i,
            0.0,
            temperature=8,
            condition="rainy",
            forecast=Forecast(tomorrow=DayForecast(condition="sunny", temp=15)),
        )
        for i in range(15)
    ]
    scored = arbitrate_badges(score_candidates(candidates, origin=ORIGIN, settings=settings), settings=settings)
    assert badge_counts(scored)["WEATHER_MIRACLE"] == 15


def test_arbitration_returns_new_records_and_leaves_input_untouched():
    settings = get_settings()
    scored = score_candidates([_candidate("a", 47.0, 8.0, temperature=26)], origin=ORIGIN, settings=settings)
    out = arbitrate_badges(scored, settings=settings)
    assert scored[0].badges == []
    assert out[0].badges
    assert out[0] is not scored[0]


def test_arbitration_of_empty_input_is_empty():
    assert arbitrate_badges([], settings=get_settings()) == []
