from __future__ import annotations

from models.incident import Severity

# Severity per incident type; unknown types fall back to DEFAULT_SEVERITY
SEVERITY_BY_TYPE: dict[str, Severity] = {
    "major_accident": "major",
    "heavy_congestion": "medium",
    "road_construction": "minor",
}
DEFAULT_SEVERITY: Severity = "medium"


def severity_for(incident_type: str) -> Severity:
    typ = str(incident_type or "").lower().strip()
    return SEVERITY_BY_TYPE.get(typ, DEFAULT_SEVERITY)
