from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from models.incident import ExistingIncidentSummary
from services.coins import CoinLedger
from services.geo import haversine_m
from services.intake import IncidentIntake
from services.settings import CoinSettings, IntakeSettings


class FakeStore:
    """
    In-memory stand-in for db/dynamo.py: same function names, plain dicts.
    Serves both the incident intake and the coin ledger.
    """

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.incidents: Dict[str, Dict[str, Any]] = {}
        self.transactions: List[Dict[str, Any]] = []
        self.verifications: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    # ---- users ----
    def add_user(self, user_id: str, **fields: Any) -> Dict[str, Any]:
        row = {
            "user_id": user_id,
            "gps_warnings": 0,
            "is_banned": False,
            "ban_reason": None,
            "is_verified": True,
            "is_trusted": False,
            "is_admin": False,
            "coins_balance": 0,
        }
        row.update(fields)
        self.users[user_id] = row
        return row

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        row = self.users.get(user_id)
        return dict(row) if row else None

    def get_gps_warnings(self, user_id: str) -> int:
        return self.users.get(user_id, {}).get("gps_warnings", 0)

    def increment_gps_warnings(self, user_id: str) -> int:
        row = self.users.setdefault(user_id, {"user_id": user_id, "gps_warnings": 0})
        row["gps_warnings"] = row.get("gps_warnings", 0) + 1
        return row["gps_warnings"]

    def set_user_verification(self, user_id: str, verified: bool, trusted: bool) -> None:
        self.users[user_id].update(is_verified=verified, is_trusted=trusted)

    def ban_user(self, user_id: str, reason: str) -> None:
        self.set_user_ban(user_id, True, reason)

    def set_user_ban(self, user_id: str, banned: bool, reason: Optional[str]) -> None:
        row = self.users[user_id]
        row["is_banned"] = banned
        row["ban_reason"] = reason
        if not banned:
            row["gps_warnings"] = 0

    # ---- incidents ----
    def seed_incident(self, lat: float, lng: float, description: str, status: str = "active") -> str:
        incident_id = self.create_incident({
            "reported_by": "seed",
            "incident_type": "heavy_congestion",
            "latitude": lat,
            "longitude": lng,
            "description": description,
            "severity": "medium",
            "credibility_score": 0.5,
            "similar_reports_count": 0,
            "is_verified": False,
        })
        self.incidents[incident_id]["status"] = status
        return incident_id

    def find_active_incidents_near(self, lat: float, lng: float, radius_meters: float = 500.0):
        return [
            ExistingIncidentSummary(id=i, description=it["description"])
            for i, it in self.incidents.items()
            if it["status"] == "active"
            and haversine_m(lat, lng, it["latitude"], it["longitude"]) < radius_meters
        ]

    def create_incident(self, fields: Dict[str, Any]) -> str:
        incident_id = f"inc-{next(self._ids)}"
        item = {
            "incident_id": incident_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "active",
            "coins_awarded": 0,
        }
        item.update({k: v for k, v in fields.items() if v is not None})
        self.incidents[incident_id] = item
        return incident_id

    def get_incident(self, incident_id: str) -> Optional[Dict[str, Any]]:
        item = self.incidents.get(incident_id)
        return dict(item) if item else None

    def list_active_incidents(self, *, incident_type=None, verified=None, limit: int = 50):
        items = [it for it in self.incidents.values() if it["status"] == "active"]
        if incident_type:
            items = [it for it in items if it["incident_type"] == incident_type]
        if verified is not None:
            items = [it for it in items if bool(it.get("is_verified")) == verified]
        items.sort(key=lambda it: it["timestamp"], reverse=True)
        return [dict(it) for it in items[:limit]]

    def delete_incident(self, incident_id: str) -> None:
        self.incidents.pop(incident_id, None)

    def list_recent_incidents(self, limit: int = 100) -> List[Dict[str, Any]]:
        items = sorted(self.incidents.values(), key=lambda it: it["timestamp"], reverse=True)
        return [dict(it) for it in items[:limit]]

    def set_incident_verified(self, incident_id: str, verified: bool, verified_by: Optional[str]) -> bool:
        item = self.incidents[incident_id]
        if verified and item.get("is_verified"):
            return False
        item["is_verified"] = verified
        item["verified_by"] = verified_by
        return True

    def add_report_verification(self, incident_id: str, verifier_id: str, action: str, notes: str) -> None:
        self.verifications.append({
            "incident_id": incident_id,
            "verifier_id": verifier_id,
            "verification_action": action,
            "verification_notes": notes,
        })

    def get_report_verifications(self, incident_id: str) -> List[Dict[str, Any]]:
        return [v for v in reversed(self.verifications) if v["incident_id"] == incident_id]

    # ---- coins ----
    def add_coin_transaction(self, user_id: str, *, transaction_type: str, amount: int, description: str,
                             balance_delta: int, incident_id=None, birr_amount=None, exchange_rate=None) -> None:
        row = self.users.setdefault(user_id, {"user_id": user_id, "coins_balance": 0})
        row["coins_balance"] = row.get("coins_balance", 0) + balance_delta
        self.transactions.append({
            "user_id": user_id,
            "transaction_type": transaction_type,
            "amount": amount,
            "incident_id": incident_id,
            "description": description,
            "birr_amount": birr_amount,
            "exchange_rate": exchange_rate,
        })

    def get_coin_balance(self, user_id: str) -> int:
        return self.users.get(user_id, {}).get("coins_balance", 0)

    def get_coin_transactions(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        rows = [t for t in self.transactions if t["user_id"] == user_id]
        return list(reversed(rows))[:limit]


@pytest.fixture()
def store() -> FakeStore:
    s = FakeStore()
    s.add_user("user-1")
    return s


@pytest.fixture()
def ledger(store: FakeStore) -> CoinLedger:
    return CoinLedger(CoinSettings(), store=store)


@pytest.fixture()
def settings() -> IntakeSettings:
    return IntakeSettings(gps_enforcement_enabled=True)


@pytest.fixture()
def intake(store: FakeStore, ledger: CoinLedger, settings: IntakeSettings) -> IncidentIntake:
    return IncidentIntake(store=store, ledger=ledger, settings=settings)
