"""Geospatial helpers."""
from __future__ import annotations

import math
from typing import Optional

from .errors import LocationUnavailable
from .models import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def resolve_origin(lat: Optional[float], lon: Optional[float]) -> Coordinate:
    """Turn a one-shot location reading into a Coordinate.

    Raises LocationUnavailable when either component is missing, not finite
    or outside WGS84 bounds.
    """
    if lat is None or lon is None:
        raise LocationUnavailable("Location is not available; provide both latitude and longitude")
    lat = float(lat)
    lon = float(lon)
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise LocationUnavailable("Location must be finite")
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
        raise LocationUnavailable(f"Location out of range: {lat}, {lon}")
    return Coordinate(lat, lon)
