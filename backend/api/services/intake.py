# backend/api/services/intake.py
"""
Incident intake: decide whether a submitted report is admitted, and with
which credibility, then persist it and pay the reporter.

    submit(report, user_id)
      1. GPS check (claimed spot vs. device fix)
      2. enforcement on + invalid -> bump warnings; ban at threshold,
         otherwise reject as a location mismatch when the warning flag is up
      3. severity from incident type
      4. active incidents within the nearby radius (store)
      5. TF-IDF similarity against them
      6. credibility = 0.5 + boost, clamped to [0, 1]
      7. create incident (store)
      8. award coins (ledger); a failed award removes the incident again
      9. Admission

Rejections are returned, not raised, so the HTTP layer picks the status code.
Store/ledger errors propagate untouched.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

from models.incident import IncidentReport, Severity
from services.credibility import credibility_score
from services.gps_validation import GPSValidationResult, validate_gps_location
from services.settings import IntakeSettings
from services.severity import severity_for
from services.text_similarity import SimilarityResult, compute_similarity

log = logging.getLogger(__name__)

BAN_REASON = "Multiple GPS location mismatches"


class RejectionKind(str, Enum):
    BANNED = "banned"
    LOCATION_MISMATCH = "location_mismatch"


class Rejection(BaseModel):
    kind: RejectionKind
    message: str
    distance_meters: Optional[float] = None
    gps_warnings: Optional[int] = None


class Admission(BaseModel):
    incident_id: str
    coins_awarded: int
    credibility_score: float
    similar_reports_count: int
    severity: Severity
    is_verified: bool = False
    gps: GPSValidationResult
    similarity: SimilarityResult


IntakeResult = Union[Admission, Rejection]


class IncidentIntake:
    """
    store  -- find_active_incidents_near, increment_gps_warnings, ban_user,
              get_user, create_incident, delete_incident
    ledger -- report_award(is_verified) -> int,
              award_coins_for_report(user_id, incident_id, is_verified) -> int
    """

    def __init__(self, store, ledger, settings: IntakeSettings):
        self.store = store
        self.ledger = ledger
        self.settings = settings

    # ---------------- GPS / warnings ----------------
    def _check_location(self, report: IncidentReport, user_id: str) -> tuple[GPSValidationResult, Optional[Rejection]]:
        gps = validate_gps_location(
            report.claimed_location,
            report.device_location,
            self.settings.max_gps_distance_meters,
        )
        if not self.settings.gps_enforcement_enabled or gps.is_valid:
            return gps, None

        warnings = self.store.increment_gps_warnings(user_id)
        if warnings >= self.settings.ban_threshold:
            self.store.ban_user(user_id, BAN_REASON)
            log.warning("User %s banned after %s GPS mismatches", user_id, warnings)
            return gps, Rejection(
                kind=RejectionKind.BANNED,
                message="Account banned due to multiple GPS location mismatches",
                distance_meters=gps.distance_meters,
                gps_warnings=warnings,
            )

        if gps.warning:
            log.info(
                "GPS mismatch for user %s: %.0fm (warning %s/%s)",
                user_id, gps.distance_meters, warnings, self.settings.ban_threshold,
            )
            return gps, Rejection(
                kind=RejectionKind.LOCATION_MISMATCH,
                message="Reported location does not match GPS location",
                distance_meters=gps.distance_meters,
                gps_warnings=warnings,
            )

        return gps, None

    # ---------------- similarity ----------------
    def _corroboration(self, report: IncidentReport) -> SimilarityResult:
        claimed = report.claimed_location
        nearby = self.store.find_active_incidents_near(
            claimed.latitude,
            claimed.longitude,
            self.settings.nearby_radius_meters,
        )
        if not nearby:
            return SimilarityResult()
        return compute_similarity(
            report.description,
            nearby,
            threshold=self.settings.similarity_threshold,
        )

    # ---------------- entry point ----------------
    def submit(self, report: IncidentReport, user_id: str) -> IntakeResult:
        gps, rejection = self._check_location(report, user_id)
        if rejection is not None:
            return rejection

        severity = severity_for(report.incident_type)
        sim = self._corroboration(report)
        score = credibility_score(sim, self.settings.credibility_boost)

        user = self.store.get_user(user_id) or {}
        is_verified = bool(user.get("is_trusted", False))
        coins = self.ledger.report_award(is_verified=False)

        incident_id = self.store.create_incident({
            "reported_by": user_id,
            "incident_type": report.incident_type,
            "latitude": report.claimed_location.latitude,
            "longitude": report.claimed_location.longitude,
            "device_latitude": report.device_location.latitude,
            "device_longitude": report.device_location.longitude,
            "gps_distance_meters": gps.distance_meters,
            "location_description": report.location_description,
            "route": report.route,
            "number_of_vehicles": report.number_of_vehicles,
            "description": report.description,
            "severity": severity,
            "credibility_score": score,
            "similar_reports_count": sim.similar_count,
            "is_verified": is_verified,
            "coins_awarded": coins,
        })

        # the award is the last write: if it fails only the incident is undone
        try:
            self.ledger.award_coins_for_report(user_id, incident_id, False)
        except Exception:
            log.exception("Coin award failed for incident %s; rolling it back", incident_id)
            self.store.delete_incident(incident_id)
            raise

        log.info(
            "Incident %s admitted (severity=%s credibility=%.2f similar=%s)",
            incident_id, severity, score, sim.similar_count,
        )
        return Admission(
            incident_id=incident_id,
            coins_awarded=coins,
            credibility_score=score,
            similar_reports_count=sim.similar_count,
            severity=severity,
            is_verified=is_verified,
            gps=gps,
            similarity=sim,
        )
