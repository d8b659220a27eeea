import os
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from models.incident import ExistingIncidentSummary
from services.geo import haversine_m
from services.h3_utils import INCIDENT_RESOLUTION, cells_within_radius, point_to_hex

log = logging.getLogger(__name__)

REGION = os.getenv("AWS_REGION", "eu-north-1")
INCIDENTS_TABLE = os.getenv("INCIDENTS_TABLE", "Incidents")
USERS_TABLE = os.getenv("USERS_TABLE", "Users")
COIN_TRANSACTIONS_TABLE = os.getenv("COIN_TRANSACTIONS_TABLE", "CoinTransactions")
REPORT_VERIFICATIONS_TABLE = os.getenv("REPORT_VERIFICATIONS_TABLE", "ReportVerifications")
INCIDENTS_ZONE_INDEX = os.getenv("INCIDENTS_ZONE_INDEX", "zone-index")
INCIDENTS_STATUS_INDEX = os.getenv("INCIDENTS_STATUS_INDEX", "status-index")

dynamodb = boto3.resource("dynamodb", region_name=REGION)
incidents_table = dynamodb.Table(INCIDENTS_TABLE)
users_table = dynamodb.Table(USERS_TABLE)
coin_transactions_table = dynamodb.Table(COIN_TRANSACTIONS_TABLE)
report_verifications_table = dynamodb.Table(REPORT_VERIFICATIONS_TABLE)

_serializer = TypeSerializer()


# ---------------- helpers ----------------
def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dec(value: float, ndigits: int = 7) -> Decimal:
    return Decimal(str(round(float(value), ndigits)))


def _plain(value: Any) -> Any:
    """Decimal -> int/float, recursively (boto3 hands back Decimals)."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _typed(item: Dict[str, Any]) -> Dict[str, Any]:
    # low-level client (transactions) wants {"S": ...}/{"N": ...} values
    return {k: _serializer.serialize(v) for k, v in item.items() if v is not None}


def _client():
    return dynamodb.meta.client


# ---------------- incidents ----------------
def find_active_incidents_near(
    lat: float, lng: float, radius_meters: float = 500.0
) -> List[ExistingIncidentSummary]:
    """
    Active incidents whose reported position lies strictly within
    radius_meters of (lat, lng). Queries the zone GSI for every H3 cell in
    the covering disk, then applies the exact Haversine cut.
    """
    found: List[ExistingIncidentSummary] = []
    for cell in cells_within_radius(lat, lng, radius_meters, INCIDENT_RESOLUTION):
        lek: Optional[Dict[str, Any]] = None
        while True:
            kwargs = {
                "IndexName": INCIDENTS_ZONE_INDEX,
                "KeyConditionExpression": Key("zone_id").eq(cell),
                "FilterExpression": Attr("status").eq("active"),
                "ProjectionExpression": "#id, #d, #lat, #lng",
                "ExpressionAttributeNames": {
                    "#id": "incident_id",
                    "#d": "description",
                    "#lat": "latitude",
                    "#lng": "longitude",
                },
            }
            if lek:
                kwargs["ExclusiveStartKey"] = lek
            resp = incidents_table.query(**kwargs)
            for it in resp.get("Items", []):
                d = haversine_m(lat, lng, float(it["latitude"]), float(it["longitude"]))
                if d < radius_meters:
                    found.append(ExistingIncidentSummary(
                        id=str(it["incident_id"]),
                        description=str(it.get("description", "")),
                    ))
            lek = resp.get("LastEvaluatedKey")
            if not lek:
                break
    return found


def create_incident(fields: Dict[str, Any]) -> str:
    """
    Write a new incident and return its id.
    `fields` carries the claimed position as latitude/longitude; the H3
    zone, timestamp and id are filled in here.
    """
    incident_id = str(uuid.uuid4())
    lat, lng = float(fields["latitude"]), float(fields["longitude"])
    item: Dict[str, Any] = {
        "incident_id": incident_id,
        "zone_id": point_to_hex(lat, lng, INCIDENT_RESOLUTION),
        "timestamp": _now_iso(),
        "status": "active",
        "coins_awarded": 0,
    }
    for key, value in fields.items():
        if value is None:
            continue
        item[key] = _dec(value) if isinstance(value, float) else value

    incidents_table.put_item(
        Item=item,
        ConditionExpression="attribute_not_exists(incident_id)",
    )
    log.info("Incident %s stored in zone %s", incident_id, item["zone_id"])
    return incident_id


def get_incident(incident_id: str) -> Optional[Dict[str, Any]]:
    resp = incidents_table.get_item(Key={"incident_id": incident_id})
    item = resp.get("Item")
    return _plain(item) if item else None


def list_active_incidents(
    *, incident_type: Optional[str] = None, verified: Optional[bool] = None, limit: int = 50
) -> List[Dict[str, Any]]:
    """Newest first, via the status GSI (status, timestamp)."""
    filt = None
    if incident_type:
        filt = Attr("incident_type").eq(incident_type)
    if verified is not None:
        cond = Attr("is_verified").eq(verified)
        filt = cond if filt is None else filt & cond

    items: List[Dict[str, Any]] = []
    lek: Optional[Dict[str, Any]] = None
    while len(items) < limit:
        kwargs: Dict[str, Any] = {
            "IndexName": INCIDENTS_STATUS_INDEX,
            "KeyConditionExpression": Key("status").eq("active"),
            "ScanIndexForward": False,
        }
        if filt is not None:
            kwargs["FilterExpression"] = filt
        if lek:
            kwargs["ExclusiveStartKey"] = lek
        resp = incidents_table.query(**kwargs)
        items.extend(resp.get("Items", []))
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            break
    return [_plain(it) for it in items[:limit]]


def delete_incident(incident_id: str) -> None:
    incidents_table.delete_item(Key={"incident_id": incident_id})


def list_recent_incidents(limit: int = 100) -> List[Dict[str, Any]]:
    """Newest first across every status (admin view); full scan."""
    items: List[Dict[str, Any]] = []
    lek: Optional[Dict[str, Any]] = None
    while True:
        kwargs: Dict[str, Any] = {}
        if lek:
            kwargs["ExclusiveStartKey"] = lek
        resp = incidents_table.scan(**kwargs)
        items.extend(resp.get("Items", []))
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            break
    items.sort(key=lambda it: it.get("timestamp", ""), reverse=True)
    return [_plain(it) for it in items[:limit]]


def set_incident_verified(incident_id: str, verified: bool, verified_by: Optional[str]) -> bool:
    """
    Returns True when the write changed the flag. Verifying is conditional
    on the incident not being verified yet, so only one caller wins the flip.
    """
    if not verified:
        incidents_table.update_item(
            Key={"incident_id": incident_id},
            UpdateExpression="SET is_verified = :f REMOVE verified_by, verified_at",
            ExpressionAttributeValues={":f": False},
        )
        return True

    try:
        incidents_table.update_item(
            Key={"incident_id": incident_id},
            UpdateExpression="SET is_verified = :t, verified_by = :by, verified_at = :at",
            ConditionExpression="attribute_not_exists(is_verified) OR is_verified <> :t",
            ExpressionAttributeValues={":t": True, ":by": verified_by, ":at": _now_iso()},
        )
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            return False
        raise
    return True


def add_report_verification(incident_id: str, verifier_id: str, action: str, notes: str) -> None:
    """Audit row for an admin verify/reject on an incident."""
    report_verifications_table.put_item(Item={
        "incident_id": incident_id,
        "created_at": f"{_now_iso()}#{uuid.uuid4().hex[:8]}",
        "verifier_id": verifier_id,
        "verification_action": action,
        "verification_notes": notes,
    })


def get_report_verifications(incident_id: str) -> List[Dict[str, Any]]:
    resp = report_verifications_table.query(
        KeyConditionExpression=Key("incident_id").eq(incident_id),
        ScanIndexForward=False,
    )
    return [_plain(it) for it in resp.get("Items", [])]


# ---------------- users ----------------
def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    resp = users_table.get_item(Key={"user_id": user_id}, ConsistentRead=True)
    item = resp.get("Item")
    return _plain(item) if item else None


def ensure_user(user_id: str, email: Optional[str] = None) -> Dict[str, Any]:
    """Create the user row with defaults the first time we see a Cognito sub."""
    defaults = {
        "user_id": user_id,
        "email": email,
        "gps_warnings": 0,
        "is_banned": False,
        "is_verified": False,
        "is_trusted": False,
        "is_admin": False,
        "coins_balance": 0,
        "created_at": _now_iso(),
    }
    try:
        users_table.put_item(
            Item={k: v for k, v in defaults.items() if v is not None},
            ConditionExpression="attribute_not_exists(user_id)",
        )
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
            raise
    return get_user(user_id) or defaults


def get_gps_warnings(user_id: str) -> int:
    return int((get_user(user_id) or {}).get("gps_warnings", 0))


def increment_gps_warnings(user_id: str) -> int:
    """Atomic ADD; returns the count after the increment."""
    resp = users_table.update_item(
        Key={"user_id": user_id},
        UpdateExpression="ADD gps_warnings :one",
        ExpressionAttributeValues={":one": 1},
        ReturnValues="UPDATED_NEW",
    )
    return int(resp["Attributes"]["gps_warnings"])


def set_user_verification(user_id: str, verified: bool, trusted: bool) -> None:
    users_table.update_item(
        Key={"user_id": user_id},
        UpdateExpression="SET is_verified = :v, is_trusted = :t",
        ExpressionAttributeValues={":v": verified, ":t": trusted},
    )


def ban_user(user_id: str, reason: str) -> None:
    set_user_ban(user_id, True, reason)


def set_user_ban(user_id: str, banned: bool, reason: Optional[str]) -> None:
    if banned:
        users_table.update_item(
            Key={"user_id": user_id},
            UpdateExpression="SET is_banned = :b, ban_reason = :r",
            ExpressionAttributeValues={":b": True, ":r": reason},
        )
    else:
        # lifting a ban also clears the GPS warnings that led to it
        users_table.update_item(
            Key={"user_id": user_id},
            UpdateExpression="SET is_banned = :b, gps_warnings = :z REMOVE ban_reason",
            ExpressionAttributeValues={":b": False, ":z": 0},
        )


# ---------------- coins ----------------
def add_coin_transaction(
    user_id: str,
    *,
    transaction_type: str,
    amount: int,
    description: str,
    balance_delta: int,
    incident_id: Optional[str] = None,
    birr_amount: Optional[float] = None,
    exchange_rate: Optional[float] = None,
) -> None:
    """
    Move the user's balance by `balance_delta` and log the ledger row in one
    DynamoDB transaction. A negative delta is guarded so the balance never
    drops below zero (TransactionCanceledException otherwise).
    """
    created_at = f"{_now_iso()}#{uuid.uuid4().hex[:8]}"
    ledger_item = {
        "user_id": user_id,
        "created_at": created_at,
        "transaction_type": transaction_type,
        "amount": int(amount),
        "incident_id": incident_id,
        "description": description,
        "status": "completed",
        "birr_amount": None if birr_amount is None else _dec(birr_amount, 2),
        "exchange_rate": None if exchange_rate is None else _dec(exchange_rate, 4),
    }

    update: Dict[str, Any] = {
        "TableName": USERS_TABLE,
        "Key": _typed({"user_id": user_id}),
        "UpdateExpression": "ADD coins_balance :d",
        "ExpressionAttributeValues": _typed({":d": int(balance_delta)}),
    }
    if balance_delta < 0:
        update["ConditionExpression"] = "coins_balance >= :need"
        update["ExpressionAttributeValues"].update(_typed({":need": -int(balance_delta)}))

    _client().transact_write_items(
        TransactItems=[
            {"Update": update},
            {"Put": {"TableName": COIN_TRANSACTIONS_TABLE, "Item": _typed(ledger_item)}},
        ]
    )


def get_coin_balance(user_id: str) -> int:
    return int((get_user(user_id) or {}).get("coins_balance", 0))


def get_coin_transactions(user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
    resp = coin_transactions_table.query(
        KeyConditionExpression=Key("user_id").eq(user_id),
        Limit=limit,
        ScanIndexForward=False,  # newest first
    )
    return [_plain(it) for it in resp.get("Items", [])]
