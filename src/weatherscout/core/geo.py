from __future__ import annotations
from dataclasses import dataclass
from math import asin, atan2, cos, degrees, floor, radians, sin, sqrt

"""
Geospatial helpers.

A tiny geometry layer so scoring, arbitration and selection can do distance math
without pulling in heavier GIS dependencies. Distances are in kilometers.
"""

EARTH_RADIUS_KM = 6371.0

COMPASS_SECTORS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


@dataclass(frozen=True)
class LatLon:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class BoundingBox:
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.lat_min <= lat <= self.lat_max and self.lon_min <= lon <= self.lon_max


def haversine_km(a: LatLon, b: LatLon) -> float:
    """Compute great-circle distance in kilometers between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(h)))


def bearing_deg(a: LatLon, b: LatLon) -> float:
    """Initial bearing from `a` to `b` in degrees, 0..360 (0 = north)."""
    d_lon = radians(b.lon - a.lon)
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    y = sin(d_lon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(d_lon)
    return (degrees(atan2(y, x)) + 360) % 360


def compass_sector(bearing: float) -> int:
    """Map a bearing onto one of 16 compass sectors (0 = N, 4 = E, ...)."""
    return int(floor((bearing + 11.25) / 22.5)) % 16


def bounding_box(center: LatLon, radius_km: float, *, km_per_degree: float = 111.32) -> BoundingBox:
    """Lat/lon box enclosing a search radius (used as a cheap prefilter)."""
    lat_delta = min(89.9, radius_km / km_per_degree)
    lon_multiplier = max(cos(radians(center.lat)), 0.1)
    lon_delta = min(179.9, radius_km / (km_per_degree * lon_multiplier))
    return BoundingBox(
        lat_min=center.lat - lat_delta,
        lat_max=center.lat + lat_delta,
        lon_min=center.lon - lon_delta,
        lon_max=center.lon + lon_delta,
    )
