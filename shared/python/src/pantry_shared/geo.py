"""
geo.py — Great-circle distance helpers.

One implementation of the haversine distance shared by the search service and
by any store that evaluates the radius filter itself (the DuckDB store binds
haversine_km as a SQL function), so both give identical results.

Usage:
    from pantry_shared.geo import haversine_km, within_radius

    km = haversine_km(40.6259, -75.3697, 40.6023, -75.4714)
    ok = within_radius((40.6259, -75.3697), (40.6023, -75.4714), radius_miles=10)
"""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0
MILES_TO_KM = 1.60934

Point = tuple[float, float]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometres between two points in decimal degrees.

    Treats the earth as a sphere of radius EARTH_RADIUS_KM.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push a fraction past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def miles_to_km(miles: float) -> float:
    return miles * MILES_TO_KM


def is_valid_coordinate_pair(latitude: float | None, longitude: float | None) -> bool:
    """True when both values are present, finite and within WGS84 bounds."""
    if latitude is None or longitude is None:
        return False
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def within_radius(center: Point, point: Point | None, radius_miles: float) -> bool:
    """
    True when `point` lies within `radius_miles` of `center` (inclusive).

    A missing point never matches.
    """
    if point is None:
        return False
    return haversine_km(center[0], center[1], point[0], point[1]) <= miles_to_km(
        radius_miles
    )
