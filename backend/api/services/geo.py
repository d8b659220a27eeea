# backend/api/services/geo.py
from __future__ import annotations

import math

from models.incident import Coordinate

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    R = EARTH_RADIUS_M
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dl / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates, in meters."""
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
