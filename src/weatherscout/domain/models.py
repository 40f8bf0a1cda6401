"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- candidate source input (`Candidate`, `Origin`)
- per-badge scoring output (`BadgeEvaluation`, `ScoredCandidate`)
- map output (`MapMarker`, `MapResult`)
- API/CLI request payload (`MarkerRequest`)

Pipeline records are frozen: each stage returns new records via `model_copy`
instead of mutating the ones it was given.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator


class Condition(str, Enum):
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    WINDY = "windy"


class BadgeType(str, Enum):
    """Badge types in declaration order (used as the stable tie-break for glyph stacking)."""

    WORTH_THE_DRIVE = "WORTH_THE_DRIVE"
    WORTH_THE_DRIVE_BUDGET = "WORTH_THE_DRIVE_BUDGET"
    WARM_AND_DRY = "WARM_AND_DRY"
    BEACH_PARADISE = "BEACH_PARADISE"
    SUNNY_STREAK = "SUNNY_STREAK"
    WEATHER_MIRACLE = "WEATHER_MIRACLE"
    HEATWAVE = "HEATWAVE"
    SNOW_KING = "SNOW_KING"

    @property
    def settings_key(self) -> str:
        return self.value.lower()


BADGE_ORDER: dict[BadgeType, int] = {b: i for i, b in enumerate(BadgeType)}


def _normalize_condition(value: Any) -> Any:
    if isinstance(value, Condition):
        return value.value
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


# Lower-cased condition name; unknown strings are kept (they score neutral).
ConditionName = Annotated[str | None, BeforeValidator(_normalize_condition)]


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class DayForecast(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: ConditionName = None
    temp: float | None = None
    high: float | None = None
    low: float | None = None


class Forecast(BaseModel):
    model_config = ConfigDict(frozen=True)

    today: DayForecast | None = None
    tomorrow: DayForecast | None = None
    day3: DayForecast | None = None


class Candidate(BaseModel):
    """A geo-located destination with a weather snapshot.

    `condition` keeps unknown strings as-is (they score neutral instead of failing).
    `badges` on input is ignored by the pipeline; badges are recomputed every run.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    location: GeoPoint
    temperature: float
    wind_speed: float | None = Field(default=None, ge=0)
    humidity: float | None = None
    condition: ConditionName = None
    stability: float | None = Field(default=None, ge=0, le=100)
    attractiveness_score: float | None = Field(default=None, ge=0, le=100)
    population: int | None = None
    country_code: str | None = None
    snowfall_24h_mm: float = Field(default=0, ge=0)
    cloud_cover: float | None = None
    forecast: Forecast | None = None
    distance_km: float | None = Field(default=None, ge=0)
    is_special: bool = False
    badges: list[BadgeType] = Field(default_factory=list)

    @field_validator("country_code")
    @classmethod
    def _normalize_country(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None


class Origin(BaseModel):
    """The baseline all comparisons are measured against (user location or a chosen point)."""

    model_config = ConfigDict(frozen=True)

    id: str = "origin"
    name: str = "Current location"
    location: GeoPoint
    temperature: float | None = None
    wind_speed: float | None = Field(default=None, ge=0)
    humidity: float | None = None
    condition: ConditionName = None
    stability: float | None = Field(default=None, ge=0, le=100)
    cloud_cover: float | None = None
    country_code: str | None = None
    forecast: Forecast | None = None
    synthetic: bool = False

    @property
    def has_weather(self) -> bool:
        return self.temperature is not None


class ViewportBounds(BaseModel):
    lat_min: float = Field(..., ge=-90, le=90)
    lat_max: float = Field(..., ge=-90, le=90)
    lon_min: float = Field(..., ge=-180, le=180)
    lon_max: float = Field(..., ge=-180, le=180)

    @model_validator(mode="after")
    def _validate_order(self) -> "ViewportBounds":
        if self.lat_max < self.lat_min:
            raise ValueError("bounds.lat_max must be >= bounds.lat_min")
        if self.lon_max < self.lon_min:
            raise ValueError("bounds.lon_max must be >= bounds.lon_min")
        return self

    def contains(self, point: GeoPoint) -> bool:
        return self.lat_min <= point.lat <= self.lat_max and self.lon_min <= point.lon <= self.lon_max


class Viewport(BaseModel):
    zoom_level: int = Field(..., ge=1)
    radius_km: float = Field(..., gt=0)
    bounds: ViewportBounds | None = None


class BadgeEvaluation(BaseModel):
    """Eligibility plus the metrics arbitration and the detail view need."""

    model_config = ConfigDict(frozen=True)

    badge: BadgeType
    eligible: bool
    rank_score: float = 0.0
    details: dict[str, Any] = Field(default_factory=dict)
    reasons: list[str] = Field(default_factory=list)


class ScoredCandidate(BaseModel):
    """A candidate plus everything the scoring engine derived for it."""

    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    distance_km: float
    weather_score: int
    evaluations: dict[BadgeType, BadgeEvaluation] = Field(default_factory=dict)
    badges: list[BadgeType] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.candidate.id

    def is_eligible(self, badge: BadgeType) -> bool:
        evaluation = self.evaluations.get(badge)
        return bool(evaluation and evaluation.eligible)


SelectionReason = Literal["origin", "special", "exclusive", "phase1", "phase2"]


class MapMarker(BaseModel):
    """One output row for the map renderer and detail view."""

    id: str
    name: str
    location: GeoPoint
    temperature: float | None
    condition: str | None
    country_code: str | None = None
    distance_km: float
    weather_score: int | None = None
    is_current_location: bool = False
    badges: list[BadgeType] = Field(default_factory=list)
    map_badges: list[BadgeType] = Field(default_factory=list)
    metrics: dict[str, dict[str, Any]] = Field(default_factory=dict)
    selection: SelectionReason


class MarkerRequest(BaseModel):
    """End-user request payload for one map refresh."""

    origin: Origin
    viewport: Viewport
    candidates: list[dict[str, Any]] | None = None
    condition_filter: str | None = None
    settings_overrides: dict[str, Any] | None = None


class MapResult(BaseModel):
    generated_at: datetime
    markers: list[MapMarker]
    meta: dict[str, Any] = Field(default_factory=dict)
