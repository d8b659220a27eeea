# scripts/create_tables.py
"""
Create the DynamoDB tables the API expects. Existing tables are left alone.

    python scripts/create_tables.py --profile etraffic-dev
"""
import argparse
import os

import boto3
from botocore.exceptions import ClientError

AWS_REGION = os.getenv("AWS_REGION", "eu-north-1")

TABLES = [
    {
        "TableName": os.getenv("INCIDENTS_TABLE", "Incidents"),
        "KeySchema": [{"AttributeName": "incident_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "incident_id", "AttributeType": "S"},
            {"AttributeName": "zone_id", "AttributeType": "S"},
            {"AttributeName": "status", "AttributeType": "S"},
            {"AttributeName": "timestamp", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                # nearby lookup: all incidents in one H3 cell
                "IndexName": os.getenv("INCIDENTS_ZONE_INDEX", "zone-index"),
                "KeySchema": [
                    {"AttributeName": "zone_id", "KeyType": "HASH"},
                    {"AttributeName": "timestamp", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
            {
                # feed: active incidents newest first
                "IndexName": os.getenv("INCIDENTS_STATUS_INDEX", "status-index"),
                "KeySchema": [
                    {"AttributeName": "status", "KeyType": "HASH"},
                    {"AttributeName": "timestamp", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
    },
    {
        "TableName": os.getenv("USERS_TABLE", "Users"),
        "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "user_id", "AttributeType": "S"}],
    },
    {
        "TableName": os.getenv("COIN_TRANSACTIONS_TABLE", "CoinTransactions"),
        "KeySchema": [
            {"AttributeName": "user_id", "KeyType": "HASH"},
            {"AttributeName": "created_at", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
    },
    {
        # admin verify/reject audit trail
        "TableName": os.getenv("REPORT_VERIFICATIONS_TABLE", "ReportVerifications"),
        "KeySchema": [
            {"AttributeName": "incident_id", "KeyType": "HASH"},
            {"AttributeName": "created_at", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "incident_id", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
    },
]


def main():
    parser = argparse.ArgumentParser(description="Create ETraffic DynamoDB tables")
    parser.add_argument("--profile", default=None, help="AWS profile name")
    parser.add_argument("--endpoint-url", default=os.getenv("DYNAMODB_ENDPOINT"),
                        help="e.g. http://localhost:8000 for DynamoDB Local")
    args = parser.parse_args()

    session = boto3.Session(profile_name=args.profile, region_name=AWS_REGION)
    client = session.client("dynamodb", endpoint_url=args.endpoint_url)

    for table in TABLES:
        name = table["TableName"]
        try:
            client.create_table(BillingMode="PAY_PER_REQUEST", **table)
            client.get_waiter("table_exists").wait(TableName=name)
            print(f"{name}: created")
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceInUseException":
                print(f"{name}: already exists")
                continue
            raise


if __name__ == "__main__":
    main()
