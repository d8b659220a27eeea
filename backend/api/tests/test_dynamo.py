"""db/dynamo.py against stub boto3 tables (no AWS calls)."""

from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

from db import dynamo
from services.h3_utils import cells_within_radius, point_to_hex

BOLE = (9.0125, 38.7561)


class StubTable:
    def __init__(self, items_by_zone=None):
        self.items_by_zone = items_by_zone or {}
        self.queries = []
        self.puts = []
        self.updates = []

    def query(self, **kwargs):
        self.queries.append(kwargs)
        zone = kwargs["KeyConditionExpression"].get_expression()["values"][1]
        return {"Items": self.items_by_zone.get(zone, [])}

    def put_item(self, **kwargs):
        self.puts.append(kwargs)

    def update_item(self, **kwargs):
        self.updates.append(kwargs)
        return {"Attributes": {"gps_warnings": Decimal("2")}}


def _item(incident_id, lat, lng, description):
    return {
        "incident_id": incident_id,
        "latitude": Decimal(str(lat)),
        "longitude": Decimal(str(lng)),
        "description": description,
    }


def test_cells_cover_radius():
    cells = cells_within_radius(*BOLE, 500)
    assert point_to_hex(*BOLE) in cells
    # a point 450m away must fall in one of the queried cells
    assert point_to_hex(BOLE[0] + 0.00405, BOLE[1]) in cells


def test_nearby_query_applies_exact_distance(monkeypatch):
    home = point_to_hex(*BOLE)
    table = StubTable({home: [
        _item("near", BOLE[0] + 0.001, BOLE[1], "jam near Bole"),
        _item("far", BOLE[0] + 0.02, BOLE[1], "jam far away"),
    ]})
    monkeypatch.setattr(dynamo, "incidents_table", table)

    found = dynamo.find_active_incidents_near(*BOLE, radius_meters=500)

    assert [f.id for f in found] == ["near"]
    assert len(table.queries) == len(cells_within_radius(*BOLE, 500))
    assert all(q["IndexName"] == dynamo.INCIDENTS_ZONE_INDEX for q in table.queries)


def test_create_incident_buckets_by_h3_and_uses_decimals(monkeypatch):
    table = StubTable()
    monkeypatch.setattr(dynamo, "incidents_table", table)

    incident_id = dynamo.create_incident({
        "latitude": BOLE[0],
        "longitude": BOLE[1],
        "credibility_score": 0.7,
        "similar_reports_count": 3,
        "route": None,
    })

    item = table.puts[0]["Item"]
    assert item["incident_id"] == incident_id
    assert item["zone_id"] == point_to_hex(*BOLE)
    assert item["status"] == "active"
    assert item["credibility_score"] == Decimal("0.7")
    assert item["similar_reports_count"] == 3
    assert "route" not in item


def test_increment_gps_warnings_is_atomic_add(monkeypatch):
    table = StubTable()
    monkeypatch.setattr(dynamo, "users_table", table)

    assert dynamo.increment_gps_warnings("user-1") == 2
    assert table.updates[0]["UpdateExpression"] == "ADD gps_warnings :one"
    assert table.updates[0]["ReturnValues"] == "UPDATED_NEW"


class StubClient:
    def __init__(self):
        self.calls = []

    def transact_write_items(self, **kwargs):
        self.calls.append(kwargs)


def test_debit_is_conditional(monkeypatch):
    client = StubClient()
    monkeypatch.setattr(dynamo, "_client", lambda: client)

    dynamo.add_coin_transaction(
        "user-1", transaction_type="converted", amount=100, balance_delta=-100,
        description="Converted 100 coins to 100 ETB", birr_amount=100.0, exchange_rate=1.0,
    )

    update, put = client.calls[0]["TransactItems"]
    assert update["Update"]["ConditionExpression"] == "coins_balance >= :need"
    assert update["Update"]["ExpressionAttributeValues"][":d"] == {"N": "-100"}
    assert put["Put"]["Item"]["transaction_type"] == {"S": "converted"}
    assert "incident_id" not in put["Put"]["Item"]


def test_ensure_user_tolerates_existing_row(monkeypatch):
    class ExistingUsers(StubTable):
        def put_item(self, **kwargs):
            raise ClientError({"Error": {"Code": "ConditionalCheckFailedException"}}, "PutItem")

        def get_item(self, **kwargs):
            return {"Item": {"user_id": "user-1", "coins_balance": Decimal("12"), "is_banned": False}}

    monkeypatch.setattr(dynamo, "users_table", ExistingUsers())

    row = dynamo.ensure_user("user-1", "a@example.com")

    assert row["coins_balance"] == 12


def test_ensure_user_propagates_other_errors(monkeypatch):
    class BrokenUsers(StubTable):
        def put_item(self, **kwargs):
            raise ClientError({"Error": {"Code": "ProvisionedThroughputExceededException"}}, "PutItem")

    monkeypatch.setattr(dynamo, "users_table", BrokenUsers())

    with pytest.raises(ClientError):
        dynamo.ensure_user("user-1")


def test_verify_is_conditional_and_reports_the_flip(monkeypatch):
    table = StubTable()
    monkeypatch.setattr(dynamo, "incidents_table", table)

    assert dynamo.set_incident_verified("inc-1", True, "admin-1") is True
    assert "is_verified <> :t" in table.updates[0]["ConditionExpression"]


def test_verify_of_already_verified_incident_is_a_no_op(monkeypatch):
    class VerifiedIncidents(StubTable):
        def update_item(self, **kwargs):
            raise ClientError({"Error": {"Code": "ConditionalCheckFailedException"}}, "UpdateItem")

    monkeypatch.setattr(dynamo, "incidents_table", VerifiedIncidents())

    assert dynamo.set_incident_verified("inc-1", True, "admin-1") is False


def test_recent_incidents_pages_through_scan_newest_first(monkeypatch):
    class Pages(StubTable):
        def scan(self, **kwargs):
            self.queries.append(kwargs)
            if "ExclusiveStartKey" not in kwargs:
                return {"Items": [{"incident_id": "a", "timestamp": "2026-01-01T08:00:00"}],
                        "LastEvaluatedKey": {"incident_id": "a"}}
            return {"Items": [{"incident_id": "b", "timestamp": "2026-01-02T08:00:00"}]}

    table = Pages()
    monkeypatch.setattr(dynamo, "incidents_table", table)

    assert [it["incident_id"] for it in dynamo.list_recent_incidents(limit=100)] == ["b", "a"]
    assert len(table.queries) == 2


def test_set_user_verification(monkeypatch):
    table = StubTable()
    monkeypatch.setattr(dynamo, "users_table", table)

    dynamo.set_user_verification("user-2", True, False)

    assert table.updates[0]["ExpressionAttributeValues"] == {":v": True, ":t": False}
