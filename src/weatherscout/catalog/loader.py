"""
Candidate catalog loader (the local candidate source).

The catalog is a local JSON array (default: `data/catalogs/destinations.json`). Rows come
in one of two shapes:
- candidate records (`location`, `temperature`, `condition`, ...), validated as-is;
- raw place/forecast rows as stored by the ingestion jobs (`latitude`, `longitude`,
  `temp_max`, `weather_main`, ...), adapted by `place_to_candidate`.

Rows without a temperature are dropped here, before scoring; that is a data-coverage
gap, not an error.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import TypeAdapter

from weatherscout.config.settings import Settings
from weatherscout.core.env import resolve_project_path
from weatherscout.domain.models import Candidate, Condition
from weatherscout.scoring.composite import round_half_up

logger = logging.getLogger(__name__)

_CANDIDATES_ADAPTER = TypeAdapter(list[Candidate])

_WEATHER_MAIN_CONDITIONS: dict[str, Condition] = {
    "clear": Condition.SUNNY,
    "clouds": Condition.CLOUDY,
    "rain": Condition.RAINY,
    "drizzle": Condition.RAINY,
    "thunderstorm": Condition.RAINY,
    "snow": Condition.SNOWY,
    "fog": Condition.WINDY,
    "mist": Condition.WINDY,
    "haze": Condition.WINDY,
}


def condition_from_weather_main(weather_main: str | None) -> Condition:
    """Map a provider category (`Clear`, `Clouds`, `Rain`, ...) onto a condition (default cloudy)."""
    if not weather_main:
        return Condition.CLOUDY
    return _WEATHER_MAIN_CONDITIONS.get(weather_main.strip().lower(), Condition.CLOUDY)


def derive_stability(cloud_cover: float | None, wind_speed: float | None, *, settings: Settings) -> int:
    """0..100: mean of a clear-sky score and a calm-wind score."""
    cfg = settings.weather.derived_stability
    clouds = cloud_cover if cloud_cover else cfg.default_cloud_cover
    wind = wind_speed if wind_speed else cfg.default_wind_speed
    cloud_score = 100 - float(clouds)
    wind_score = max(0.0, 100 - float(wind) * cfg.wind_penalty_per_unit)
    return int(round_half_up((cloud_score + wind_score) / 2))


def _forecast_day(row: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not row:
        return None
    temp_max = row.get("temp_max")
    temp_min = row.get("temp_min")
    return {
        "condition": condition_from_weather_main(row.get("weather_main")).value,
        "temp": temp_max,
        "high": round_half_up(temp_max) if temp_max is not None else None,
        "low": round_half_up(temp_min) if temp_min is not None else None,
    }


def place_to_candidate(row: Mapping[str, Any], *, settings: Settings) -> dict[str, Any]:
    """Adapt a raw place/forecast row into a candidate payload (not yet validated)."""
    temp_max = row.get("temp_max")
    wind = row.get("wind_speed")
    forecast_rows = row.get("forecast") or {}
    stability = row.get("stability_score") or derive_stability(row.get("cloud_cover"), wind, settings=settings)
    return {
        "id": str(row["id"]),
        "name": row.get("name") or "",
        "location": {"lat": row["latitude"], "lon": row["longitude"]},
        "temperature": round_half_up(temp_max) if temp_max is not None else None,
        "wind_speed": round_half_up(wind) if wind else None,
        "humidity": row.get("humidity"),
        "condition": condition_from_weather_main(row.get("weather_main")).value,
        "stability": stability,
        "attractiveness_score": row.get("attractiveness_score") or settings.weather.default_attractiveness,
        "population": row.get("population") or 0,
        "country_code": row.get("country_code"),
        "snowfall_24h_mm": row.get("snow_24h") or 0,
        "cloud_cover": row.get("cloud_cover"),
        "forecast": {
            "today": _forecast_day(forecast_rows.get("today") or row),
            "tomorrow": _forecast_day(forecast_rows.get("tomorrow")),
            "day3": _forecast_day(forecast_rows.get("day3")),
        },
        "distance_km": row.get("distance"),
    }


def _is_place_row(row: Mapping[str, Any]) -> bool:
    return "latitude" in row and "location" not in row


def drop_missing_temperature(
    payloads: Iterable[Mapping[str, Any]],
) -> tuple[list[Mapping[str, Any]], int]:
    kept: list[Mapping[str, Any]] = []
    dropped = 0
    for payload in payloads:
        if payload.get("temperature") is None:
            dropped += 1
            continue
        kept.append(payload)
    return kept, dropped


def parse_candidates(rows: Iterable[Mapping[str, Any]], *, settings: Settings) -> tuple[list[Candidate], int]:
    """Validate rows into candidates; returns (candidates, dropped_without_temperature)."""
    payloads, dropped = drop_missing_temperature(
        place_to_candidate(row, settings=settings) if _is_place_row(row) else row for row in rows
    )
    if dropped:
        logger.info("Dropped %d candidate(s) without temperature", dropped)
    return _CANDIDATES_ADAPTER.validate_python(payloads), dropped


def load_catalog_rows(path: str | Path) -> list[dict[str, Any]]:
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Catalog {resolved} must contain a JSON array")
    return payload


def load_candidates(path: str | Path, *, settings: Settings) -> list[Candidate]:
    """Load and validate a candidate catalog JSON file."""
    candidates, _ = parse_candidates(load_catalog_rows(path), settings=settings)
    return candidates
