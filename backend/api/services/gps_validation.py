# backend/api/services/gps_validation.py
"""
Checks that the place a user claims to be reporting from is consistent with
the GPS fix their device sent along with the report.
"""
from __future__ import annotations

from pydantic import BaseModel

from models.incident import Coordinate
from services.geo import distance_meters

DEFAULT_MAX_DISTANCE_M = 500.0
WARNING_RATIO = 0.7


class GPSValidationResult(BaseModel):
    is_valid: bool
    distance_meters: float
    warning: bool


def validate_gps_location(
    claimed: Coordinate,
    device: Coordinate,
    max_distance_meters: float = DEFAULT_MAX_DISTANCE_M,
) -> GPSValidationResult:
    """
    is_valid: device within max_distance_meters of the claimed spot.
    warning:  device beyond 70% of the max (borderline, checked independently,
              so a valid report can still carry a warning).
    """
    d = distance_meters(claimed, device)
    return GPSValidationResult(
        is_valid=d <= max_distance_meters,
        distance_meters=d,
        warning=d > max_distance_meters * WARNING_RATIO,
    )
