from __future__ import annotations
from dataclasses import dataclass
from math import atan2, cos, pi, radians, sin, sqrt
from typing import Iterable, Protocol

"""
Geospatial helpers.

We keep a tiny geometry layer here so stats and rendering code can do distance
calculations without pulling in heavier GIS dependencies.

`curve_points` is a drawing aid (a single-humped arc between two points), not a
geodesic. Never sum its segments as a distance.
"""

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


class _Located(Protocol):
    lat: float
    lng: float


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute great-circle distance in kilometers between two points."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)

    h = sin(dlat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlng / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


def haversine_points_km(a: GeoPoint, b: GeoPoint) -> float:
    """Point-typed variant of `haversine_km`."""
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def path_length_km(points: Iterable[_Located]) -> float:
    """Sum haversine distances over consecutive points (0 for fewer than two)."""
    total = 0.0
    prev: _Located | None = None
    for p in points:
        if prev is not None:
            total += haversine_km(prev.lat, prev.lng, p.lat, p.lng)
        prev = p
    return total


def curve_points(start: GeoPoint, end: GeoPoint, steps: int = 30) -> list[tuple[float, float]]:
    """Return `steps + 1` (lat, lng) samples bulging away from the straight line.

    The offset is `sin(t * pi) * distance_km / 2000`, added to latitude and
    half-weighted on longitude, so both endpoints are exact.
    """
    steps = max(1, int(steps))
    bulge = haversine_points_km(start, end) / 2000

    points: list[tuple[float, float]] = []
    for i in range(steps + 1):
        t = i / steps
        lat = start.lat + (end.lat - start.lat) * t
        lng = start.lng + (end.lng - start.lng) * t
        offset = sin(t * pi) * bulge
        points.append((lat + offset, lng + offset * 0.5))
    return points


def route_curves(points: Iterable[_Located], steps: int = 30) -> list[list[tuple[float, float]]]:
    """Curves between each consecutive pair of (already ordered) points."""
    ordered = [GeoPoint(lat=p.lat, lng=p.lng) for p in points]
    return [curve_points(a, b, steps=steps) for a, b in zip(ordered, ordered[1:])]
