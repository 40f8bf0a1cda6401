# src/weatherscout/features/weather.py
"""
Weather quality feature (place-level).

Converts one weather snapshot into a 0..100 quality score and derives travel time.

Score = weighted sum of four sub-scores (each 0..100):
- temperature comfort: peaks at the comfort temperature, loses N points per degree away from it
- condition quality: lookup table, unknown conditions score neutral
- stability: used as-is (missing -> configured default)
- wind: `100 - wind_speed * penalty`, floored at 0

"Weather at ETA" uses the current snapshot as a proxy for the weather on arrival:
no hourly forecast is available. `ForecastLookup` lets callers plug one in.
"""

from __future__ import annotations

from typing import Callable, Protocol

from weatherscout.config.settings import Settings
from weatherscout.scoring.composite import clamp, round_half_up, weighted_sum


class WeatherReading(Protocol):
    temperature: float | None
    condition: str | None
    stability: float | None
    wind_speed: float | None


# (reading, eta_hours) -> reading expected on arrival
ForecastLookup = Callable[[WeatherReading, float], WeatherReading]


def condition_quality(condition: str | None, *, settings: Settings) -> float:
    cfg = settings.weather
    if condition is None:
        return float(cfg.unknown_condition_score)
    return float(cfg.condition_scores.get(condition.lower(), cfg.unknown_condition_score))


def weather_components(reading: WeatherReading, *, settings: Settings) -> dict[str, float]:
    """Per-factor sub-scores (0..100) before weighting."""
    cfg = settings.weather
    temp = reading.temperature
    if temp is None:
        temp = cfg.fallback_origin_temperature_c
    stability = reading.stability if reading.stability is not None else cfg.default_stability
    wind = reading.wind_speed if reading.wind_speed is not None else cfg.default_wind_speed_kmh
    return {
        "temperature": max(0.0, 100 - abs(float(temp) - cfg.comfort_temperature_c) * cfg.temperature_penalty_per_c),
        "condition": condition_quality(reading.condition, settings=settings),
        "stability": float(stability),
        "wind": max(0.0, 100 - float(wind) * cfg.wind_penalty_per_kmh),
    }


def weather_score(reading: WeatherReading, *, settings: Settings) -> int:
    """Weighted 0..100 weather quality score, clamped and rounded."""
    components = weather_components(reading, settings=settings)
    raw = weighted_sum(components, settings.weather.score_weights.model_dump())
    return int(round_half_up(clamp(raw, 0, 100)))


def eta_hours(distance_km: float, *, settings: Settings) -> float:
    """Travel time at the configured average speed, floored so close places don't inflate value."""
    cfg = settings.weather
    return max(cfg.min_eta_hours, float(distance_km) / cfg.average_speed_kmh)


def weather_score_at_eta(
    reading: WeatherReading,
    eta: float,
    *,
    settings: Settings,
    forecast_lookup: ForecastLookup | None = None,
) -> int:
    """Weather score expected on arrival (current snapshot unless a lookup is plugged in)."""
    if forecast_lookup is not None:
        reading = forecast_lookup(reading, eta)
    return weather_score(reading, settings=settings)
