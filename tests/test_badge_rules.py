from __future__ import annotations

import pytest

from weatherscout.config.settings import get_settings
from weatherscout.domain.models import BadgeType, Candidate, DayForecast, Forecast, GeoPoint, Origin
from weatherscout.features.badges import (
    evaluate_badges,
    evaluate_beach_paradise,
    evaluate_heatwave,
    evaluate_snow_king,
    evaluate_sunny_streak,
    evaluate_warm_and_dry,
    evaluate_weather_miracle,
    evaluate_worth_the_drive,
    evaluate_worth_the_drive_budget,
)

ORIGIN = Origin(location=GeoPoint(lat=52.52, lon=13.40), temperature=5)


def _candidate(**kwargs) -> Candidate:
    payload = {"id": "x", "location": GeoPoint(lat=48.0, lon=11.0), "temperature": 20}
    payload.update(kwargs)
    return Candidate(**payload)


def _forecast(tomorrow: tuple[str, float] | None, day3: tuple[str, float] | None, today=None) -> Forecast:
    def _day(v):
        if v is None:
            return None
        condition, temp = v
        return DayForecast(condition=condition, temp=temp, high=temp + 2)

    return Forecast(today=_day(today), tomorrow=_day(tomorrow), day3=_day(day3))


def test_worth_the_drive_warm_destination_300km_is_eligible():
    settings = get_settings()
    dest = _candidate(temperature=25, condition="sunny")

    ev = evaluate_worth_the_drive(dest, origin=ORIGIN, distance_km=300, settings=settings)

    assert ev.eligible is True
    assert ev.details["weather_destination"] == 87
    assert ev.details["weather_origin"] == 57
    assert ev.details["delta"] == 30
    assert ev.details["eta_hours"] == pytest.approx(3.75)
    assert ev.details["value"] == pytest.approx(30 / 4.5)
    assert ev.rank_score == pytest.approx(30 / 4.5 + 87 * 0.02)


def test_worth_the_drive_rejects_small_temperature_gain():
    settings = get_settings()
    # Great weather score but only +3°C warmer than home.
    origin = Origin(location=GeoPoint(lat=52.52, lon=13.40), temperature=19, condition="rainy", stability=10)
    dest = _candidate(temperature=22, condition="sunny", stability=100)

    ev = evaluate_worth_the_drive(dest, origin=origin, distance_km=100, settings=settings)

    assert ev.details["delta"] >= 10
    assert ev.eligible is False


def test_worth_the_drive_rejects_long_drive_with_low_value():
    settings = get_settings()
    dest = _candidate(temperature=25, condition="sunny")
    ev = evaluate_worth_the_drive(dest, origin=ORIGIN, distance_km=1000, settings=settings)
    # delta 30 over 12.5h + 0.75h -> ~2.26 pts/h
    assert ev.details["value"] < 2.5
    assert ev.eligible is False


def test_budget_efficiency_is_temperature_gain_per_km():
    settings = get_settings()
    b = evaluate_worth_the_drive_budget(_candidate(temperature=20), origin=ORIGIN, distance_km=50, settings=settings)
    c = evaluate_worth_the_drive_budget(_candidate(temperature=18), origin=ORIGIN, distance_km=20, settings=settings)
    assert b.rank_score == pytest.approx(0.30)
    assert c.rank_score == pytest.approx(0.65)
    assert b.eligible and c.eligible


def test_budget_distance_is_floored_and_cold_destinations_rejected():
    settings = get_settings()
    same_spot = evaluate_worth_the_drive_budget(
        _candidate(temperature=12), origin=ORIGIN, distance_km=0, settings=settings
    )
    assert same_spot.rank_score == pytest.approx(7.0)

    cold = evaluate_worth_the_drive_budget(_candidate(temperature=9), origin=ORIGIN, distance_km=10, settings=settings)
    assert cold.eligible is False


def test_warm_and_dry_gates_on_temperature_condition_and_wind():
    settings = get_settings()
    assert evaluate_warm_and_dry(_candidate(temperature=12, condition="cloudy"), settings=settings).eligible
    assert not evaluate_warm_and_dry(_candidate(temperature=11.9, condition="sunny"), settings=settings).eligible
    assert not evaluate_warm_and_dry(_candidate(temperature=20, condition="rainy"), settings=settings).eligible
    assert not evaluate_warm_and_dry(
        _candidate(temperature=20, condition="sunny", wind_speed=21), settings=settings
    ).eligible


def test_beach_paradise_range_and_rank():
    settings = get_settings()
    ok = evaluate_beach_paradise(
        _candidate(temperature=28, condition="sunny", wind_speed=10, attractiveness_score=80), settings=settings
    )
    assert ok.eligible
    assert ok.rank_score == pytest.approx(28 + 0.5 * 80)

    assert not evaluate_beach_paradise(_candidate(temperature=33, condition="sunny"), settings=settings).eligible
    assert not evaluate_beach_paradise(_candidate(temperature=25, condition="rainy"), settings=settings).eligible
    assert not evaluate_beach_paradise(
        _candidate(temperature=25, condition="sunny", wind_speed=16), settings=settings
    ).eligible


def test_sunny_streak_needs_three_sunny_days():
    settings = get_settings()
    streak = _candidate(condition="sunny", forecast=_forecast(("sunny", 21), ("sunny", 22)))
    broken = _candidate(condition="sunny", forecast=_forecast(("cloudy", 21), ("sunny", 22)))
    no_forecast = _candidate(condition="sunny")

    assert evaluate_sunny_streak(streak, settings=settings).eligible
    assert evaluate_sunny_streak(streak, settings=settings).details["sunny_days"] == 3
    assert not evaluate_sunny_streak(broken, settings=settings).eligible
    assert not evaluate_sunny_streak(no_forecast, settings=settings).eligible


def test_weather_miracle_bad_today_sunny_and_warmer_later():
    settings = get_settings()
    miracle = _candidate(temperature=10, condition="rainy", forecast=_forecast(("cloudy", 12), ("sunny", 16)))
    too_small = _candidate(temperature=10, condition="rainy", forecast=_forecast(("sunny", 13), None))
    good_today = _candidate(temperature=10, condition="sunny", forecast=_forecast(("sunny", 20), None))

    ev = evaluate_weather_miracle(miracle, settings=settings)
    assert ev.eligible
    assert ev.details["temp_gain_c"] == pytest.approx(6)
    assert not evaluate_weather_miracle(too_small, settings=settings).eligible
    assert not evaluate_weather_miracle(good_today, settings=settings).eligible


def test_heatwave_counts_hot_days_from_highs():
    settings = get_settings()
    hot = _candidate(temperature=31, forecast=_forecast(("sunny", 29), None))  # tomorrow high 31
    mild = _candidate(temperature=31, forecast=_forecast(("sunny", 25), ("sunny", 26)))

    assert evaluate_heatwave(hot, settings=settings).details["hot_days"] == 2
    assert evaluate_heatwave(hot, settings=settings).eligible
    assert not evaluate_heatwave(mild, settings=settings).eligible


def test_snow_king_path_c_one_snowy_day_regardless_of_snowfall():
    settings = get_settings()
    c = _candidate(
        temperature=-6,
        condition="cloudy",
        snowfall_24h_mm=0,
        forecast=Forecast(
            today=DayForecast(condition="cloudy", temp=-6, high=-2),
            tomorrow=DayForecast(condition="snowy", temp=-5, high=-3),
            day3=DayForecast(condition="cloudy", temp=-7, high=-4),
        ),
    )

    ev = evaluate_snow_king(c, settings=settings)

    assert ev.details["snowy_days"] == 1
    assert ev.details["avg_temp_c"] == pytest.approx(-6)
    assert ev.details["max_temp_c"] == pytest.approx(-2)
    assert ev.eligible
    assert ev.details["path"] == "C"


def test_snow_king_path_a_heavy_snowfall():
    settings = get_settings()
    c = _candidate(temperature=-1, condition="snowy", snowfall_24h_mm=15)
    ev = evaluate_snow_king(c, settings=settings)
    assert ev.details["path"] == "A"
    # snow component min(1, max(15/20, 1/1)) = 1 -> 60; cold clamp01(-1/-15) -> ~2.7
    assert ev.rank_score == pytest.approx(60 + 40 * (1 / 15))


def test_snow_king_rejects_melting_snow():
    settings = get_settings()
    c = _candidate(temperature=4, condition="snowy", snowfall_24h_mm=30)
    assert evaluate_snow_king(c, settings=settings).eligible is False


def test_evaluate_badges_covers_every_badge_type_in_order():
    settings = get_settings()
    evaluations = evaluate_badges(_candidate(), origin=ORIGIN, distance_km=50, settings=settings)
    assert list(evaluations) == list(BadgeType)
    assert all(ev.badge is badge for badge, ev in evaluations.items())
