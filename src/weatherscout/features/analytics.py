# src/weatherscout/features/analytics.py
"""
Weather history analytics for the detail view.

Inputs are daily readings ordered oldest -> newest (typically the last 7-20 days).
Short histories degrade to neutral values instead of failing.

Thresholds and label cut-offs come from `settings.weather.analytics`.
Timestamps without a timezone are read as UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Sequence

from weatherscout.config.settings import Settings


@dataclass(frozen=True)
class HistoryRecord:
    timestamp: datetime
    temperature: float
    condition: str | None = None
    rain_mm: float = 0.0


@dataclass(frozen=True)
class GroundWarning:
    severity: Literal["high", "medium"]
    text: str


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def history_stability(records: Sequence[HistoryRecord], *, settings: Settings) -> float:
    """0..1, higher = more predictable. Too-short histories -> the neutral value."""
    cfg = settings.weather.analytics
    if len(records) < cfg.min_stability_records:
        return cfg.neutral_stability
    temps = [r.temperature for r in records]
    mean = sum(temps) / len(temps)
    variance = sum((t - mean) ** 2 for t in temps) / len(temps)
    temp_stability = max(0.0, 1 - variance / cfg.temp_variance_scale)

    conditions = [r.condition for r in records]
    condition_stability = 1 - len(set(conditions)) / len(conditions)
    return temp_stability * cfg.temp_stability_weight + condition_stability * cfg.condition_stability_weight


def temperature_trend(records: Sequence[HistoryRecord], *, settings: Settings) -> float:
    """Least-squares slope in °C/day; too-short histories -> 0."""
    n = len(records)
    if n < settings.weather.analytics.min_trend_records:
        return 0.0
    temps = [r.temperature for r in records]
    sum_x = sum(range(n))
    sum_y = sum(temps)
    sum_xy = sum(i * t for i, t in enumerate(temps))
    sum_x2 = sum(i * i for i in range(n))
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def recent_rain_mm(
    records: Sequence[HistoryRecord],
    *,
    settings: Settings,
    now: datetime | None = None,
) -> float:
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    cutoff = now - timedelta(days=settings.weather.analytics.recent_rain_days)
    return sum(r.rain_mm for r in records if _as_utc(r.timestamp) >= cutoff)


def ground_conditions_warning(rain_mm: float, *, settings: Settings) -> GroundWarning | None:
    cfg = settings.weather.analytics
    if rain_mm > cfg.rain_high_mm:
        return GroundWarning(severity="high", text="Ground very wet, camping difficult")
    if rain_mm > cfg.rain_medium_mm:
        return GroundWarning(severity="medium", text="Ground damp, choose your pitch carefully")
    return None


def stability_label(stability: float, *, settings: Settings) -> str:
    cfg = settings.weather.analytics
    if stability >= cfg.very_stable_threshold:
        return "very stable"
    if stability >= cfg.moderately_stable_threshold:
        return "moderately stable"
    return "changeable"


def trend_label(trend: float, *, settings: Settings) -> str:
    cfg = settings.weather.analytics
    if trend > cfg.warming_threshold:
        return "warming"
    if trend < cfg.cooling_threshold:
        return "cooling"
    return "steady"


def weather_analytics(
    records: Sequence[HistoryRecord],
    *,
    settings: Settings,
    now: datetime | None = None,
) -> dict:
    stability = history_stability(records, settings=settings)
    rain = recent_rain_mm(records, settings=settings, now=now)
    trend = temperature_trend(records, settings=settings)
    warning = ground_conditions_warning(rain, settings=settings)
    return {
        "stability": {"score": stability, "label": stability_label(stability, settings=settings)},
        "ground_conditions": {
            "recent_rain_mm": rain,
            "warning": None if warning is None else {"severity": warning.severity, "text": warning.text},
        },
        "trend": {"value": trend, "label": trend_label(trend, settings=settings)},
    }
