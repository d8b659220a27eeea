from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

IncidentType = Literal["major_accident", "heavy_congestion", "road_construction"]
Severity = Literal["minor", "medium", "major"]

# Wire format is camelCase (web dashboard); Python side stays snake_case.
_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinate(BaseModel):
    latitude: float
    longitude: float


class IncidentReport(BaseModel):
    """A report draft as it enters the intake pipeline (never mutated)."""
    model_config = ConfigDict(frozen=True)

    incident_type: IncidentType
    claimed_location: Coordinate
    device_location: Coordinate
    description: str = Field(..., min_length=10)
    number_of_vehicles: Optional[int] = None
    location_description: Optional[str] = None
    route: Optional[str] = None


class ExistingIncidentSummary(BaseModel):
    id: str
    description: str


# Payload coming FROM the dashboard for POST /incidents
class IncidentIn(BaseModel):
    model_config = _WIRE

    incident_type: IncidentType = Field(..., description="Type of incident")
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="Device GPS latitude")
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="Device GPS longitude")
    reported_latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="Latitude of the incident")
    reported_longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="Longitude of the incident")
    location_description: Optional[str] = None
    route: Optional[str] = None
    number_of_vehicles: Optional[int] = Field(None, ge=0)
    description: str = Field(..., min_length=10)

    def to_report(self) -> IncidentReport:
        return IncidentReport(
            incident_type=self.incident_type,
            claimed_location=Coordinate(latitude=self.reported_latitude, longitude=self.reported_longitude),
            device_location=Coordinate(latitude=self.latitude, longitude=self.longitude),
            description=self.description,
            number_of_vehicles=self.number_of_vehicles,
            location_description=self.location_description,
            route=self.route,
        )


# POST /reports: route + location text are mandatory, claimed position
# falls back to the device fix when the client does not send one.
class ReportIn(IncidentIn):
    reported_latitude: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    reported_longitude: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)
    location_description: str = Field(..., min_length=1)
    route: str = Field(..., min_length=1)

    def to_report(self) -> IncidentReport:
        claimed = Coordinate(
            latitude=self.latitude if self.reported_latitude is None else self.reported_latitude,
            longitude=self.longitude if self.reported_longitude is None else self.reported_longitude,
        )
        return IncidentReport(
            incident_type=self.incident_type,
            claimed_location=claimed,
            device_location=Coordinate(latitude=self.latitude, longitude=self.longitude),
            description=self.description,
            number_of_vehicles=self.number_of_vehicles,
            location_description=self.location_description,
            route=self.route,
        )


class IncidentCreated(BaseModel):
    model_config = _WIRE

    id: str
    message: str = "Incident reported successfully"
    coins_awarded: int
    credibility_score: float
    similar_reports_count: int
    severity: Severity
    is_verified: bool = False


class IncidentOut(BaseModel):
    model_config = _WIRE

    id: str
    incident_type: IncidentType
    latitude: float
    longitude: float
    location_description: Optional[str] = None
    route: Optional[str] = None
    number_of_vehicles: Optional[int] = None
    description: str
    severity: Severity
    is_verified: bool = False
    credibility_score: float
    similar_reports_count: int = 0
    coins_awarded: int = 0
    status: str = "active"
    created_at: datetime
    reported_by: str


class AdminIncidentOut(IncidentOut):
    # reporter flags joined in for the moderation table
    reporter_email: Optional[str] = None
    reporter_verified: bool = False
    reporter_banned: bool = False
