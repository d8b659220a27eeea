import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from models.incident import AdminIncidentOut
from models.user import UserProfile
from routes.deps import get_ledger, get_store
from routes.incident import to_incident_out
from services.auth import require_admin
from services.coins import CoinLedger

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/admin", tags=["admin"])


class VerifyBody(BaseModel):
    verified: bool
    notes: Optional[str] = None


class BanBody(BaseModel):
    banned: bool
    reason: Optional[str] = None


class UserVerifyBody(BaseModel):
    verified: bool
    trusted: bool = False


@router.get("/incidents", response_model=List[AdminIncidentOut])
def list_incidents_for_review(
    limit: int = Query(100, ge=1, le=500),
    admin: UserProfile = Depends(require_admin),
    store=Depends(get_store),
):
    """Latest incidents of any status, with the reporter's standing."""
    reporters: Dict[str, dict] = {}
    out: List[AdminIncidentOut] = []
    for item in store.list_recent_incidents(limit=limit):
        uid = item.get("reported_by", "")
        if uid not in reporters:
            reporters[uid] = store.get_user(uid) or {}
        reporter = reporters[uid]
        out.append(AdminIncidentOut(
            **to_incident_out(item).model_dump(),
            reporter_email=reporter.get("email"),
            reporter_verified=bool(reporter.get("is_verified", False)),
            reporter_banned=bool(reporter.get("is_banned", False)),
        ))
    return out


@router.put("/incidents/{incident_id}/verify")
def verify_incident(
    incident_id: str,
    body: VerifyBody,
    admin: UserProfile = Depends(require_admin),
    store=Depends(get_store),
    ledger: CoinLedger = Depends(get_ledger),
):
    """
    Mark an incident (un)verified. The reporter gets the verified-report
    bonus only from the call whose write actually flips the flag.
    """
    incident = store.get_incident(incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    flipped = store.set_incident_verified(incident_id, body.verified, admin.user_id if body.verified else None)
    bonus = 0
    if body.verified and flipped:
        bonus = ledger.award_coins_for_report(incident["reported_by"], incident_id, True)

    if body.verified:
        store.add_report_verification(incident_id, admin.user_id, "verified", body.notes or "Admin verified")
    else:
        store.add_report_verification(incident_id, admin.user_id, "rejected", body.notes or "Admin rejected")

    log.info("Admin %s set incident %s verified=%s", admin.user_id, incident_id, body.verified)
    state = "verified" if body.verified else "unverified"
    return {"message": f"Incident {state} successfully", "coinsAwarded": bonus}


@router.get("/incidents/{incident_id}/verifications")
def incident_verifications(
    incident_id: str,
    admin: UserProfile = Depends(require_admin),
    store=Depends(get_store),
):
    return store.get_report_verifications(incident_id)


@router.put("/users/{user_id}/verify")
def verify_user(
    user_id: str,
    body: UserVerifyBody,
    admin: UserProfile = Depends(require_admin),
    store=Depends(get_store),
):
    """Verified users may post to /incidents; trusted users' reports start verified."""
    if not store.get_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    store.set_user_verification(user_id, body.verified, body.trusted)
    log.info("Admin %s set user %s verified=%s trusted=%s", admin.user_id, user_id, body.verified, body.trusted)
    return {"message": "User verification updated", "isVerified": body.verified, "isTrusted": body.trusted}


@router.put("/users/{user_id}/ban")
def ban_user(
    user_id: str,
    body: BanBody,
    admin: UserProfile = Depends(require_admin),
    store=Depends(get_store),
):
    if not store.get_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    store.set_user_ban(user_id, body.banned, body.reason if body.banned else None)
    log.info("Admin %s set user %s banned=%s", admin.user_id, user_id, body.banned)
    return {"message": f"User {'banned' if body.banned else 'unbanned'} successfully"}
