"""
H3 helpers used to bucket incidents spatially.

Incidents are stored under the resolution-9 cell of their reported position,
so "everything within R meters" becomes "all cells in a k-disk around the
point" followed by an exact distance filter.
"""

import math
from typing import List

try:
    import h3  # python-h3
except Exception as e:
    raise RuntimeError("python-h3 is required. Install with: pip install h3") from e

INCIDENT_RESOLUTION = 9


def point_to_hex(lat: float, lng: float, resolution: int = INCIDENT_RESOLUTION) -> str:
    """
    Return the H3 hex ID for (lat, lng) at the given resolution.
    Compatible with h3<4 and h3>=4.
    """
    try:  # h3 >= 4.x
        return h3.latlng_to_cell(lat, lng, resolution)
    except AttributeError:  # h3 < 4.x
        return h3.geo_to_h3(lat, lng, resolution)


def edge_length_m(resolution: int = INCIDENT_RESOLUTION) -> float:
    try:
        return float(h3.average_hexagon_edge_length(resolution, unit="m"))
    except AttributeError:
        return float(h3.edge_length(resolution, unit="m"))


def disk(cell: str, k: int) -> List[str]:
    try:
        return list(h3.grid_disk(cell, k))
    except AttributeError:
        return list(h3.k_ring(cell, k))


def rings_for_radius(radius_m: float, resolution: int = INCIDENT_RESOLUTION) -> int:
    # Neighbouring centres sit sqrt(3) * edge apart; one extra ring covers
    # points near the edge of the origin cell.
    step = math.sqrt(3) * edge_length_m(resolution)
    return max(1, int(math.ceil(radius_m / step)) + 1)


def cells_within_radius(lat: float, lng: float, radius_m: float,
                        resolution: int = INCIDENT_RESOLUTION) -> List[str]:
    """Superset of the cells that can hold a point within radius_m of (lat, lng)."""
    origin = point_to_hex(lat, lng, resolution)
    return disk(origin, rings_for_radius(radius_m, resolution))
