"""
Lightweight spatial indexing (grid bucket) for lat/lon points.

Used by arbitration and marker selection to avoid O(N^2) spacing checks when the
candidate list grows to thousands of places. Cells are fixed-size lat/lon buckets
(`floor(lat / cell_deg), floor(lon / cell_deg)` with `cell_deg = cell_km / km_per_degree`),
which is also the geographic grid used for per-cell marker quotas.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from weatherscout.core.geo import LatLon, haversine_km

T = TypeVar("T")

CellKey = tuple[int, int]


@dataclass(frozen=True)
class _Entry(Generic[T]):
    item: T
    point: LatLon


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: Iterable[T] = (),
        *,
        get_latlon: Callable[[T], tuple[float, float]],
        cell_size_km: float = 250.0,
        km_per_degree: float = 111.32,
    ):
        if float(cell_size_km) <= 0:
            raise ValueError("cell_size_km must be > 0")
        self._get_latlon = get_latlon
        self._cell_size_km = float(cell_size_km)
        self._km_per_degree = float(km_per_degree)
        self._cell_deg = self._cell_size_km / self._km_per_degree
        self._cells: dict[CellKey, list[_Entry[T]]] = {}
        self._entries: list[_Entry[T]] = []
        for it in items:
            self.add(it)

    def __len__(self) -> int:
        return len(self._entries)

    def cell_key(self, lat: float, lon: float) -> CellKey:
        return (int(math.floor(lat / self._cell_deg)), int(math.floor(lon / self._cell_deg)))

    def add(self, item: T) -> CellKey:
        lat, lon = self._get_latlon(item)
        entry = _Entry(item=item, point=LatLon(lat=float(lat), lon=float(lon)))
        key = self.cell_key(entry.point.lat, entry.point.lon)
        self._entries.append(entry)
        self._cells.setdefault(key, []).append(entry)
        return key

    def count_in_cell(self, key: CellKey) -> int:
        return len(self._cells.get(key, ()))

    def _nearby_entries(self, lat: float, lon: float, radius_km: float) -> Iterable[_Entry[T]]:
        lat_span_deg = radius_km / self._km_per_degree
        extreme_lat = min(90.0, abs(lat) + lat_span_deg)
        cos_lat = math.cos(math.radians(extreme_lat))
        lon_span_deg = 360.0 if cos_lat < 1e-6 else lat_span_deg / cos_lat

        # Windows that cross a pole or the antimeridian fall back to a full scan.
        if lon_span_deg >= 180.0 or abs(lon) + lon_span_deg > 180.0 or abs(lat) + lat_span_deg > 90.0:
            return self._entries

        cy, cx = self.cell_key(lat, lon)
        lat_steps = int(math.ceil(lat_span_deg / self._cell_deg))
        lon_steps = int(math.ceil(lon_span_deg / self._cell_deg))
        out: list[_Entry[T]] = []
        for dy in range(-lat_steps, lat_steps + 1):
            for dx in range(-lon_steps, lon_steps + 1):
                cell = self._cells.get((cy + dy, cx + dx))
                if cell:
                    out.extend(cell)
        return out

    def query_within(self, *, lat: float, lon: float, radius_km: float) -> list[T]:
        r = float(radius_km)
        if r <= 0 or not self._entries:
            return []
        origin = LatLon(lat=float(lat), lon=float(lon))
        return [e.item for e in self._nearby_entries(origin.lat, origin.lon, r) if haversine_km(origin, e.point) <= r]

    def any_closer_than(self, *, lat: float, lon: float, distance_km: float) -> bool:
        """True when some indexed point lies strictly closer than `distance_km`."""
        d = float(distance_km)
        if d <= 0 or not self._entries:
            return False
        origin = LatLon(lat=float(lat), lon=float(lon))
        return any(haversine_km(origin, e.point) < d for e in self._nearby_entries(origin.lat, origin.lon, d))
