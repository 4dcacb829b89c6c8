"""
Pytest configuration and shared fixtures.
Unit tests use moto (AWS mocks in-process).
Integration tests use LocalStack (real service emulation via Docker).
"""
import json
import os

# No X-Ray daemon in tests. Must be set before anything imports aws_xray_sdk.
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")
os.environ.setdefault("AWS_XRAY_CONTEXT_MISSING", "LOG_ERROR")

import boto3  # noqa: E402
import pytest  # noqa: E402
from moto import mock_aws  # noqa: E402

LOCALSTACK_ENDPOINT = os.environ.get("LOCALSTACK_ENDPOINT", "http://localhost:4566")
USE_LOCALSTACK = os.environ.get("USE_LOCALSTACK", "false").lower() == "true"

TABLES = {
    "INDUSTRIES_TABLE": "test-industries",
    "SUB_INDUSTRIES_TABLE": "test-sub-industries",
    "USE_CASES_TABLE": "test-use-cases",
    "SOLUTIONS_TABLE": "test-solutions",
    "MAPPING_TABLE": "test-mapping",
    "CUSTOMER_CASES_TABLE": "test-customer-cases",
    "NEWS_TABLE": "test-news",
    "BLOGS_TABLE": "test-blogs",
    "USERS_TABLE": "test-users",
    "ACCOUNTS_TABLE": "test-accounts",
}
# tables whose records are located by id through the IdIndex GSI
ID_INDEXED = {"SUB_INDUSTRIES_TABLE", "USE_CASES_TABLE", "CUSTOMER_CASES_TABLE"}
BUCKET = "test-documents"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch):
    """Set fake AWS credentials and portal resource names so boto3 doesn't error in tests."""
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test")
    for var, name in TABLES.items():
        monkeypatch.setenv(var, name)
    monkeypatch.setenv("DOCUMENTS_BUCKET", BUCKET)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")


def table_definition(env_var: str, table_name: str) -> dict:
    definition = {
        "TableName": table_name,
        "AttributeDefinitions": [
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        "KeySchema": [
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }
    indexes = []
    if env_var in ID_INDEXED:
        definition["AttributeDefinitions"].append({"AttributeName": "id", "AttributeType": "S"})
        indexes.append({
            "IndexName": "IdIndex",
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "Projection": {"ProjectionType": "ALL"},
        })
    if env_var == "MAPPING_TABLE":
        definition["AttributeDefinitions"] += [
            {"AttributeName": "GSI_PK", "AttributeType": "S"},
            {"AttributeName": "GSI_SK", "AttributeType": "S"},
        ]
        indexes.append({
            "IndexName": "ReverseIndex",
            "KeySchema": [
                {"AttributeName": "GSI_PK", "KeyType": "HASH"},
                {"AttributeName": "GSI_SK", "KeyType": "RANGE"},
            ],
            "Projection": {"ProjectionType": "ALL"},
        })
    if indexes:
        definition["GlobalSecondaryIndexes"] = indexes
    return definition


@pytest.fixture(scope="session")
def table_schema():
    """`table_definition` for tests that create tables against a real endpoint."""
    return table_definition


@pytest.fixture
def portal(aws_env):
    """
    All portal tables plus the documents bucket, created with moto.
    Yields the PortalTables bundle the handlers build for themselves.
    """
    with mock_aws():
        client = boto3.client("dynamodb", region_name="us-east-1")
        for env_var, table_name in TABLES.items():
            client.create_table(**table_definition(env_var, table_name))
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket=BUCKET)

        from portal_shared.config import PortalConfig
        from portal_shared.dynamodb import PortalTables

        yield PortalTables(PortalConfig.from_env())


@pytest.fixture
def api_event():
    """Build an API Gateway proxy event, optionally carrying Cognito claims."""

    def build(method, path, body=None, *, role=None, industries=None, query=None, user_id="user-1"):
        event = {
            "httpMethod": method,
            "path": path,
            "queryStringParameters": query,
            "body": json.dumps(body) if body is not None else None,
            "requestContext": {"requestId": "req-test"},
        }
        if role is not None:
            claims = {"sub": user_id, "email": f"{user_id}@example.com", "custom:role": role}
            if industries is not None:
                claims["custom:assignedIndustries"] = json.dumps(industries)
            event["requestContext"]["authorizer"] = {"claims": claims}
        return event

    return build


@pytest.fixture
def catalog(portal):
    """
    Two industries with one sub-industry each, written straight to the tables:
      retail → grocery      energy → grid
    """
    for industry_id, name in (("retail", "Retail"), ("energy", "Energy")):
        portal.industries.put_item(Item={
            "PK": f"INDUSTRY#{industry_id}", "SK": "METADATA",
            "id": industry_id, "name": name, "definition": name, "isVisible": True, "version": 0,
        })
    for industry_id, sub_id, name in (("retail", "grocery", "Grocery"), ("energy", "grid", "Power Grid")):
        portal.sub_industries.put_item(Item={
            "PK": f"INDUSTRY#{industry_id}", "SK": f"SUBINDUSTRY#{sub_id}",
            "id": sub_id, "industryId": industry_id, "name": name, "definition": name, "version": 0,
        })
    return portal


@pytest.fixture
def bucket_keys(portal):
    """Keys currently stored in the documents bucket."""

    def keys() -> list[str]:
        resp = boto3.client("s3", region_name="us-east-1").list_objects_v2(Bucket=BUCKET)
        return [obj["Key"] for obj in resp.get("Contents", [])]

    return keys
