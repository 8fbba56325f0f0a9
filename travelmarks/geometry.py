"""Geospatial helpers for distance estimates and route interpolation.

Coordinates are ``(longitude, latitude)`` pairs in degrees throughout the
package, matching the order used by the geocoding service.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

Coordinate = Tuple[float, float]
Bounds = Tuple[Coordinate, Coordinate]


EARTH_RADIUS_KM = 6371.0
AVERAGE_SPEED_KMH = 60.0


@dataclass(frozen=True)
class RouteEstimate:
    """Total great-circle distance and the travel time at the assumed speed."""

    distance_km: float = 0.0
    eta_hours: float = 0.0

    @property
    def eta_minutes(self) -> float:
        return self.eta_hours * 60.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute the great-circle distance between two lon/lat points in kilometres."""

    lon1, lat1 = map(math.radians, a)
    lon2, lat2 = map(math.radians, b)
    sin_lat = math.sin((lat2 - lat1) / 2.0)
    sin_lon = math.sin((lon2 - lon1) / 2.0)
    h = sin_lat**2 + math.cos(lat1) * math.cos(lat2) * sin_lon**2
    central_angle = 2.0 * math.asin(min(1.0, math.sqrt(h)))
    return EARTH_RADIUS_KM * central_angle


def estimate_route(points: Sequence[Coordinate]) -> RouteEstimate:
    """Return the summed leg distance and ETA for an ordered coordinate list."""

    if len(points) < 2:
        return RouteEstimate()
    distance = sum(haversine_km(start, end) for start, end in zip(points[:-1], points[1:]))
    return RouteEstimate(distance_km=distance, eta_hours=distance / AVERAGE_SPEED_KMH)


def lerp(a: Coordinate, b: Coordinate, fraction: float) -> Coordinate:
    """Linearly interpolate longitude and latitude between two coordinates."""

    return (
        a[0] + (b[0] - a[0]) * fraction,
        a[1] + (b[1] - a[1]) * fraction,
    )


def bounding_box(points: Sequence[Coordinate]) -> Bounds:
    """Return the ``(south-west, north-east)`` corners enclosing ``points``."""

    if not points:
        raise ValueError("Cannot compute the bounds of an empty coordinate list.")
    lons = [lon for lon, _ in points]
    lats = [lat for _, lat in points]
    return (min(lons), min(lats)), (max(lons), max(lats))
