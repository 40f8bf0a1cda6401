# src/weatherscout/features/badges.py
"""
Per-candidate badge rules (the scoring engine).

Every rule is a pure function of one candidate, the origin and settings. It returns a
`BadgeEvaluation` carrying:
- `eligible`: the rule's gate,
- `rank_score`: the metric arbitration sorts by,
- `details`: raw metrics kept for tie-breaks and the detail view,
- `reasons`: short human-readable explanations.

Global constraints (caps, spacing, winner-take-all, exclusivity) are NOT applied here;
see `weatherscout.badges.arbiter`.

"Today" is the candidate's current snapshot (`temperature`, `condition`); tomorrow and
day 3 come from `candidate.forecast`. Missing forecast days never count toward a streak.
"""

from __future__ import annotations

from weatherscout.config.settings import Settings
from weatherscout.domain.models import BadgeEvaluation, BadgeType, Candidate, DayForecast, Origin
from weatherscout.features.weather import ForecastLookup, eta_hours, weather_score_at_eta
from weatherscout.scoring.composite import clamp01


def _day_temp(day: DayForecast | None) -> float | None:
    if day is None:
        return None
    return day.temp if day.temp is not None else day.high


def _day_high(day: DayForecast | None) -> float | None:
    if day is None:
        return None
    return day.high if day.high is not None else day.temp


def _upcoming_days(candidate: Candidate) -> list[DayForecast | None]:
    forecast = candidate.forecast
    if forecast is None:
        return [None, None]
    return [forecast.tomorrow, forecast.day3]


def _window_conditions(candidate: Candidate) -> list[str | None]:
    """Conditions for today, tomorrow, day 3."""
    return [candidate.condition, *[d.condition if d else None for d in _upcoming_days(candidate)]]


def _attractiveness(candidate: Candidate, settings: Settings) -> float:
    if candidate.attractiveness_score is None:
        return float(settings.weather.default_attractiveness)
    return float(candidate.attractiveness_score)


def _wind(candidate: Candidate, settings: Settings) -> float:
    if candidate.wind_speed is None:
        return float(settings.weather.default_wind_speed_kmh)
    return float(candidate.wind_speed)


def _origin_temperature(origin: Origin, settings: Settings) -> float:
    if origin.temperature is None:
        return float(settings.weather.fallback_origin_temperature_c)
    return float(origin.temperature)


def evaluate_worth_the_drive(
    candidate: Candidate,
    *,
    origin: Origin,
    distance_km: float,
    settings: Settings,
    forecast_lookup: ForecastLookup | None = None,
) -> BadgeEvaluation:
    cfg = settings.badges.worth_the_drive
    eta = eta_hours(distance_km, settings=settings)

    # Both sides are scored for the same arrival window.
    dest_score = weather_score_at_eta(candidate, eta, settings=settings, forecast_lookup=forecast_lookup)
    origin_score = weather_score_at_eta(origin, eta, settings=settings, forecast_lookup=forecast_lookup)
    delta = dest_score - origin_score
    value = delta / (eta + cfg.eta_penalty_hours)
    temp_gain = float(candidate.temperature) - _origin_temperature(origin, settings)

    eligible = (
        dest_score >= cfg.min_destination_score
        and delta >= cfg.min_score_delta
        and value >= cfg.min_value
        and candidate.temperature >= cfg.min_destination_temp_c
        and temp_gain >= cfg.min_temp_gain_c
    )
    rank_score = value * cfg.rank_value_weight + dest_score * cfg.rank_score_weight

    reasons = [f"Weather {dest_score} vs {origin_score} at home ({delta:+d})", f"ETA {eta:.1f}h"]
    if eligible:
        reasons.append(f"Worth it: {value:.1f} pts/h")
    return BadgeEvaluation(
        badge=BadgeType.WORTH_THE_DRIVE,
        eligible=eligible,
        rank_score=rank_score,
        details={
            "eta_hours": eta,
            "weather_destination": dest_score,
            "weather_origin": origin_score,
            "delta": delta,
            "value": value,
            "temp_gain_c": temp_gain,
            "temperature_c": float(candidate.temperature),
        },
        reasons=reasons,
    )


def evaluate_worth_the_drive_budget(
    candidate: Candidate, *, origin: Origin, distance_km: float, settings: Settings
) -> BadgeEvaluation:
    cfg = settings.badges.worth_the_drive_budget
    temp_delta = float(candidate.temperature) - _origin_temperature(origin, settings)
    efficiency = temp_delta / max(float(distance_km), cfg.min_distance_km)
    eligible = temp_delta >= cfg.min_temp_delta_c and candidate.temperature >= cfg.min_destination_temp_c
    return BadgeEvaluation(
        badge=BadgeType.WORTH_THE_DRIVE_BUDGET,
        eligible=eligible,
        rank_score=efficiency,
        details={"temp_delta_c": temp_delta, "distance_km": float(distance_km), "efficiency": efficiency},
        reasons=[f"{temp_delta:+.0f}°C for {distance_km:.0f} km"],
    )


def evaluate_warm_and_dry(candidate: Candidate, *, settings: Settings) -> BadgeEvaluation:
    cfg = settings.badges.warm_and_dry
    wind = _wind(candidate, settings)
    eligible = (
        candidate.temperature >= cfg.min_temp_c
        and candidate.condition not in cfg.excluded_conditions
        and wind <= cfg.max_wind_speed_kmh
    )
    return BadgeEvaluation(
        badge=BadgeType.WARM_AND_DRY,
        eligible=eligible,
        rank_score=float(candidate.temperature),
        details={"temperature_c": float(candidate.temperature), "wind_speed": wind},
    )


def evaluate_beach_paradise(candidate: Candidate, *, settings: Settings) -> BadgeEvaluation:
    cfg = settings.badges.beach_paradise
    wind = _wind(candidate, settings)
    attractiveness = _attractiveness(candidate, settings)
    eligible = (
        cfg.min_temp_c <= candidate.temperature <= cfg.max_temp_c
        and candidate.condition in cfg.allowed_conditions
        and wind <= cfg.max_wind_speed_kmh
    )
    rank_score = cfg.temp_weight * float(candidate.temperature) + cfg.attractiveness_weight * attractiveness
    return BadgeEvaluation(
        badge=BadgeType.BEACH_PARADISE,
        eligible=eligible,
        rank_score=rank_score,
        details={"temperature_c": float(candidate.temperature), "wind_speed": wind, "attractiveness": attractiveness},
    )


def evaluate_sunny_streak(candidate: Candidate, *, settings: Settings) -> BadgeEvaluation:
    cfg = settings.badges.sunny_streak
    sunny_days = sum(1 for c in _window_conditions(candidate) if c == "sunny")
    attractiveness = _attractiveness(candidate, settings)
    rank_score = cfg.temp_weight * float(candidate.temperature) + cfg.attractiveness_weight * attractiveness
    return BadgeEvaluation(
        badge=BadgeType.SUNNY_STREAK,
        eligible=sunny_days >= cfg.min_sunny_days,
        rank_score=rank_score,
        details={
            "sunny_days": sunny_days,
            "temperature_c": float(candidate.temperature),
            "attractiveness": attractiveness,
        },
        reasons=[f"{sunny_days} sunny days ahead"],
    )


def evaluate_weather_miracle(candidate: Candidate, *, settings: Settings) -> BadgeEvaluation:
    cfg = settings.badges.weather_miracle
    upcoming = _upcoming_days(candidate)
    turns_sunny = any(d is not None and d.condition == "sunny" for d in upcoming)
    future_temps = [t for t in (_day_temp(d) for d in upcoming) if t is not None]
    temp_gain = (max(future_temps) - float(candidate.temperature)) if future_temps else None
    eligible = (
        candidate.condition in cfg.bad_conditions
        and turns_sunny
        and temp_gain is not None
        and temp_gain >= cfg.min_temp_gain_c
    )
    return BadgeEvaluation(
        badge=BadgeType.WEATHER_MIRACLE,
        eligible=eligible,
        rank_score=temp_gain or 0.0,
        details={"today": candidate.condition, "turns_sunny": turns_sunny, "temp_gain_c": temp_gain},
    )


def evaluate_heatwave(candidate: Candidate, *, settings: Settings) -> BadgeEvaluation:
    cfg = settings.badges.heatwave
    values = [float(candidate.temperature), *[_day_high(d) for d in _upcoming_days(candidate)]]
    hot_days = sum(1 for v in values if v is not None and v >= cfg.hot_day_threshold_c)
    return BadgeEvaluation(
        badge=BadgeType.HEATWAVE,
        eligible=hot_days >= cfg.min_hot_days,
        rank_score=float(hot_days),
        details={"hot_days": hot_days},
    )


def evaluate_snow_king(candidate: Candidate, *, settings: Settings) -> BadgeEvaluation:
    cfg = settings.badges.snow_king
    upcoming = _upcoming_days(candidate)
    snowy_days = sum(1 for c in _window_conditions(candidate) if c == "snowy")

    temps = [float(candidate.temperature), *[t for t in (_day_temp(d) for d in upcoming) if t is not None]]
    today_high = _day_high(candidate.forecast.today) if candidate.forecast else None
    highs = [
        today_high if today_high is not None else float(candidate.temperature),
        *[h for h in (_day_high(d) for d in upcoming) if h is not None],
    ]
    avg_temp = sum(temps) / len(temps)
    max_temp = max(highs)
    snowfall = float(candidate.snowfall_24h_mm)

    matched_path: str | None = None
    for path in cfg.paths:
        if path.min_snowfall_mm is not None and snowfall < path.min_snowfall_mm:
            continue
        if path.min_snowy_days is not None and snowy_days < path.min_snowy_days:
            continue
        if avg_temp <= path.max_avg_temp_c and max_temp <= path.max_temp_c:
            matched_path = path.name
            break

    window = len(temps)
    snow_component = 100 * clamp01(max(snowfall / cfg.snow_reference_mm, snowy_days / window))
    cold_component = 100 * clamp01(avg_temp / cfg.cold_reference_c)
    score = cfg.snow_weight * snow_component + cfg.cold_weight * cold_component

    reasons = [f"{snowy_days} snowy day(s), avg {avg_temp:.1f}°C, max {max_temp:.1f}°C"]
    if matched_path:
        reasons.append(f"Qualifies via path {matched_path}")
    return BadgeEvaluation(
        badge=BadgeType.SNOW_KING,
        eligible=matched_path is not None,
        rank_score=score,
        details={
            "path": matched_path,
            "snowy_days": snowy_days,
            "snowfall_24h_mm": snowfall,
            "avg_temp_c": avg_temp,
            "max_temp_c": max_temp,
            "score": score,
        },
        reasons=reasons,
    )


def evaluate_badges(
    candidate: Candidate,
    *,
    origin: Origin,
    distance_km: float,
    settings: Settings,
    forecast_lookup: ForecastLookup | None = None,
) -> dict[BadgeType, BadgeEvaluation]:
    """Run every badge rule for one candidate (declaration order)."""
    evaluations = [
        evaluate_worth_the_drive(
            candidate, origin=origin, distance_km=distance_km, settings=settings, forecast_lookup=forecast_lookup
        ),
        evaluate_worth_the_drive_budget(candidate, origin=origin, distance_km=distance_km, settings=settings),
        evaluate_warm_and_dry(candidate, settings=settings),
        evaluate_beach_paradise(candidate, settings=settings),
        evaluate_sunny_streak(candidate, settings=settings),
        evaluate_weather_miracle(candidate, settings=settings),
        evaluate_heatwave(candidate, settings=settings),
        evaluate_snow_king(candidate, settings=settings),
    ]
    return {e.badge: e for e in evaluations}
