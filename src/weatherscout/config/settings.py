# src/weatherscout/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/weatherscout/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `WEATHERSCOUT_LOG_LEVEL`)
- an external YAML file via `WEATHERSCOUT_CONFIG_PATH`

Design rule:
- Every threshold, cap and spacing constant lives in YAML, not in the scoring code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from weatherscout.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `weatherscout.config`."""
    text = resources.files("weatherscout.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "WeatherScout"
    timezone: str = "Europe/Berlin"
    log_level: str = "INFO"


class CatalogSettings(BaseModel):
    path: str = "data/catalogs/destinations.json"


class WeatherScoreWeights(BaseModel):
    temperature: float = 0.35
    condition: float = 0.30
    stability: float = 0.20
    wind: float = 0.15


class DerivedStabilitySettings(BaseModel):
    """Fallback stability (0..100) for store rows that carry no precomputed score."""

    default_cloud_cover: float = 50
    default_wind_speed: float = 5
    wind_penalty_per_unit: float = 2


class AnalyticsSettings(BaseModel):
    """History analytics (detail view): neutral fallbacks, warning thresholds, label cut-offs."""

    min_stability_records: int = Field(3, ge=1)
    neutral_stability: float = Field(0.5, ge=0, le=1)
    temp_variance_scale: float = Field(100, gt=0)
    temp_stability_weight: float = 0.6
    condition_stability_weight: float = 0.4
    min_trend_records: int = Field(5, ge=2)
    recent_rain_days: float = Field(3, gt=0)
    rain_high_mm: float = 30
    rain_medium_mm: float = 15
    very_stable_threshold: float = 0.8
    moderately_stable_threshold: float = 0.6
    warming_threshold: float = 0.5
    cooling_threshold: float = -0.5


class WeatherSettings(BaseModel):
    comfort_temperature_c: float = 22
    temperature_penalty_per_c: float = 3
    condition_scores: dict[str, float] = Field(
        default_factory=lambda: {"sunny": 100, "cloudy": 60, "windy": 50, "rainy": 20, "snowy": 30}
    )
    unknown_condition_score: float = 50
    wind_penalty_per_kmh: float = 2
    score_weights: WeatherScoreWeights = Field(default_factory=WeatherScoreWeights)
    default_stability: float = Field(50, ge=0, le=100)
    default_wind_speed_kmh: float = Field(0, ge=0)
    default_attractiveness: float = Field(50, ge=0, le=100)
    average_speed_kmh: float = Field(80, gt=0)
    min_eta_hours: float = Field(0.5, gt=0)
    fallback_origin_temperature_c: float = 15
    derived_stability: DerivedStabilitySettings = Field(default_factory=DerivedStabilitySettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)


class BadgeRuleSettings(BaseModel):
    """Shared arbitration + display knobs carried by every badge type."""

    cap: int | None = Field(default=None, ge=0)
    min_spacing_km: float | None = Field(default=None, ge=0)
    per_country_cap: int | None = Field(default=None, ge=0)
    icon: str = ""
    color: str = "#FFFFFF"
    priority: int = 100
    map_visible: bool = True


class WorthTheDriveSettings(BadgeRuleSettings):
    min_destination_score: float = 70
    min_score_delta: float = 10
    min_value: float = 2.5
    min_destination_temp_c: float = 4
    min_temp_gain_c: float = 5
    eta_penalty_hours: float = 0.75
    rank_value_weight: float = 1.0
    rank_score_weight: float = 0.02


class WorthTheDriveBudgetSettings(BadgeRuleSettings):
    min_temp_delta_c: float = 3
    min_destination_temp_c: float = 10
    min_distance_km: float = Field(1, gt=0)


class WarmAndDrySettings(BadgeRuleSettings):
    min_temp_c: float = 12
    excluded_conditions: list[str] = Field(default_factory=lambda: ["rainy", "snowy"])
    max_wind_speed_kmh: float = 20


class RankedBadgeSettings(BadgeRuleSettings):
    """Badges ranked by `temp_weight * temperature + attractiveness_weight * attractiveness`."""

    temp_weight: float = 1.0
    attractiveness_weight: float = 0.5


class BeachParadiseSettings(RankedBadgeSettings):
    min_temp_c: float = 22
    max_temp_c: float = 32
    allowed_conditions: list[str] = Field(default_factory=lambda: ["sunny", "cloudy"])
    max_wind_speed_kmh: float = 15


class SunnyStreakSettings(RankedBadgeSettings):
    min_sunny_days: int = 3


class WeatherMiracleSettings(BadgeRuleSettings):
    bad_conditions: list[str] = Field(default_factory=lambda: ["rainy", "snowy", "windy"])
    min_temp_gain_c: float = 5


class HeatwaveSettings(BadgeRuleSettings):
    hot_day_threshold_c: float = 30
    min_hot_days: int = 2


class SnowKingPath(BaseModel):
    """One qualifying path: snow evidence plus a cold ceiling that keeps snow from melting."""

    name: str
    min_snowfall_mm: float | None = None
    min_snowy_days: int | None = None
    max_avg_temp_c: float
    max_temp_c: float


class SnowKingSettings(BadgeRuleSettings):
    paths: list[SnowKingPath] = Field(
        default_factory=lambda: [
            SnowKingPath(name="A", min_snowfall_mm=10, max_avg_temp_c=0, max_temp_c=3),
            SnowKingPath(name="B", min_snowy_days=2, max_avg_temp_c=-2, max_temp_c=2),
            SnowKingPath(name="C", min_snowy_days=1, max_avg_temp_c=-5, max_temp_c=-1),
        ]
    )
    snow_weight: float = 0.6
    cold_weight: float = 0.4
    snow_reference_mm: float = Field(20, gt=0)
    cold_reference_c: float = Field(-15, lt=0)


class BadgeSettings(BaseModel):
    worth_the_drive: WorthTheDriveSettings = Field(default_factory=WorthTheDriveSettings)
    worth_the_drive_budget: WorthTheDriveBudgetSettings = Field(default_factory=WorthTheDriveBudgetSettings)
    warm_and_dry: WarmAndDrySettings = Field(default_factory=WarmAndDrySettings)
    beach_paradise: BeachParadiseSettings = Field(default_factory=BeachParadiseSettings)
    sunny_streak: SunnyStreakSettings = Field(default_factory=SunnyStreakSettings)
    weather_miracle: WeatherMiracleSettings = Field(default_factory=WeatherMiracleSettings)
    heatwave: HeatwaveSettings = Field(default_factory=HeatwaveSettings)
    snow_king: SnowKingSettings = Field(default_factory=SnowKingSettings)


class ZoomStep(BaseModel):
    """Table row: applies to every zoom level <= `max_zoom` (first match wins)."""

    max_zoom: int
    value: float


class SelectionSettings(BaseModel):
    min_markers: int = Field(25, ge=1)
    max_markers: int = Field(150, ge=1)
    radius_km_per_marker: float = Field(20, gt=0)
    zoom_factors: list[ZoomStep] = Field(
        default_factory=lambda: [
            ZoomStep(max_zoom=3, value=0.6),
            ZoomStep(max_zoom=4, value=1.0),
            ZoomStep(max_zoom=5, value=1.5),
        ]
    )
    default_zoom_factor: float = 2.0
    min_distance_km_by_zoom: list[ZoomStep] = Field(
        default_factory=lambda: [
            ZoomStep(max_zoom=4, value=80),
            ZoomStep(max_zoom=5, value=60),
            ZoomStep(max_zoom=6, value=45),
            ZoomStep(max_zoom=7, value=30),
        ]
    )
    default_min_distance_km: float = 20
    grid_cell_size_km: float = Field(250, gt=0)
    km_per_degree: float = Field(111.32, gt=0)
    phase1_ratio: float = Field(0.4, ge=0, le=1)
    grid_cell_quota: int = Field(3, ge=0)
    attractiveness_tie_tolerance: float = Field(5, ge=0)
    temperature_tie_tolerance_c: float = Field(2, ge=0)
    max_glyphs_per_marker: int = Field(6, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    badges: BadgeSettings = Field(default_factory=BadgeSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: the whitelist stays small; tuning knobs belong in YAML.
    """
    load_dotenv_if_present()
    data = dict(data)
    log_level = os.getenv("WEATHERSCOUT_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    catalog_path = os.getenv("WEATHERSCOUT_CATALOG_PATH")
    if catalog_path:
        data.setdefault("catalog", {})["path"] = catalog_path

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("WEATHERSCOUT_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")