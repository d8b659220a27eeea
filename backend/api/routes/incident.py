import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from models.incident import IncidentCreated, IncidentIn, IncidentOut, IncidentReport
from models.user import UserProfile
from routes.deps import get_intake, get_store
from services.auth import require_verified
from services.broadcast import hub, incident_created_event
from services.intake import IncidentIntake, Rejection, RejectionKind

log = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["incident"])


def to_incident_out(item: Dict[str, Any]) -> IncidentOut:
    """Dynamo item -> public shape (id/created_at naming of the dashboard)."""
    return IncidentOut(
        id=item["incident_id"],
        created_at=item["timestamp"],
        **{k: v for k, v in item.items() if k not in ("incident_id", "timestamp")},
    )


def admit_report(
    report: IncidentReport,
    user: UserProfile,
    intake: IncidentIntake,
    background: BackgroundTasks,
):
    """
    Run the intake pipeline and translate its outcome into HTTP:
    banned -> 403, location mismatch -> 400 (with distance), admitted -> 201.
    """
    try:
        result = intake.submit(report, user.user_id)
    except ClientError as e:
        log.exception("Incident intake failed for %s: %s", user.user_id, e)
        raise HTTPException(status_code=500, detail="Failed to add incident.")

    if isinstance(result, Rejection):
        if result.kind is RejectionKind.BANNED:
            raise HTTPException(status_code=403, detail=result.message)
        return JSONResponse(
            status_code=400,
            content={
                "detail": result.message,
                "warning": True,
                "distanceMeters": result.distance_meters,
            },
        )

    background.add_task(hub.broadcast, incident_created_event({
        "id": result.incident_id,
        "incidentType": report.incident_type,
        "latitude": report.claimed_location.latitude,
        "longitude": report.claimed_location.longitude,
        "description": report.description,
        "severity": result.severity,
        "credibilityScore": result.credibility_score,
        "similarReportsCount": result.similar_reports_count,
        "isVerified": result.is_verified,
    }))

    return IncidentCreated(
        id=result.incident_id,
        coins_awarded=result.coins_awarded,
        credibility_score=result.credibility_score,
        similar_reports_count=result.similar_reports_count,
        severity=result.severity,
        is_verified=result.is_verified,
    )


@router.get("/incidents", response_model=List[IncidentOut])
def list_incidents(
    incident_type: Optional[str] = Query(None, alias="type", description="Filter by incident type"),
    verified: Optional[bool] = Query(None, description="Filter by verification state"),
    limit: int = Query(50, ge=1, le=200),
    store=Depends(get_store),
):
    """Active incidents, newest first."""
    try:
        items = store.list_active_incidents(incident_type=incident_type, verified=verified, limit=limit)
    except ClientError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [to_incident_out(it) for it in items]


@router.get("/incidents/{incident_id}", response_model=IncidentOut)
def get_incident(incident_id: str, store=Depends(get_store)):
    item = store.get_incident(incident_id)
    if not item:
        raise HTTPException(status_code=404, detail="Incident not found")
    return to_incident_out(item)


@router.post("/incidents", status_code=201, response_model=IncidentCreated)
def report_incident(
    data: IncidentIn,
    background: BackgroundTasks,
    user: UserProfile = Depends(require_verified),
    intake: IncidentIntake = Depends(get_intake),
):
    """
    Verified users only. `latitude/longitude` is the device GPS fix,
    `reportedLatitude/reportedLongitude` the incident position.
    """
    return admit_report(data.to_report(), user, intake, background)
