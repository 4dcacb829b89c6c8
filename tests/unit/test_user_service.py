"""
Unit tests for admin user management.

Cognito (moto's cognito-idp) is the identity store; the Users table mirrors
role and industry assignments for listing.
"""
import json

import boto3
import pytest
from botocore.exceptions import ClientError


def call(event):
    from user_service.handler import handler

    result = handler(event, None)
    return result["statusCode"], json.loads(result["body"])


@pytest.fixture
def user_pool(portal, monkeypatch):
    cognito = boto3.client("cognito-idp", region_name="us-east-1")
    pool_id = cognito.create_user_pool(
        PoolName="test-portal-users",
        Schema=[
            {"Name": "role", "AttributeDataType": "String", "Mutable": True},
            {"Name": "assignedIndustries", "AttributeDataType": "String", "Mutable": True},
        ],
    )["UserPool"]["Id"]
    monkeypatch.setenv("USER_POOL_ID", pool_id)
    return cognito, pool_id


def cognito_attributes(user_pool, username):
    cognito, pool_id = user_pool
    resp = cognito.admin_get_user(UserPoolId=pool_id, Username=username)
    return {a["Name"]: a["Value"] for a in resp["UserAttributes"]}


def test_create_specialist(portal, user_pool, api_event):
    status, body = call(api_event(
        "POST", "/admin/users",
        {"email": "spec@example.com", "role": "specialist", "assignedIndustries": ["retail"]}, role="admin",
    ))
    assert status == 201
    assert body["role"] == "specialist"
    assert body["assignedIndustries"] == ["retail"]
    assert body["version"] == 0

    attributes = cognito_attributes(user_pool, body["userId"])
    assert attributes["custom:role"] == "specialist"
    assert json.loads(attributes["custom:assignedIndustries"]) == ["retail"]

    _, listing = call(api_event("GET", "/admin/users", role="admin"))
    assert [u["email"] for u in listing] == ["spec@example.com"]


def test_assignments_only_kept_for_specialists(portal, user_pool, api_event):
    status, body = call(api_event(
        "POST", "/admin/users", {"email": "u@example.com", "role": "user", "assignedIndustries": ["retail"]},
        role="admin",
    ))
    assert status == 201
    assert "assignedIndustries" not in body


def test_duplicate_email_conflicts(portal, user_pool, api_event):
    payload = {"email": "dup@example.com", "role": "admin"}
    call(api_event("POST", "/admin/users", payload, role="admin"))
    status, body = call(api_event("POST", "/admin/users", payload, role="admin"))
    assert status == 409
    assert body["error"]["message"] == "A user with this email already exists"


def test_unknown_role_is_a_validation_error(portal, user_pool, api_event):
    status, body = call(api_event("POST", "/admin/users", {"email": "x@example.com", "role": "root"}, role="admin"))
    assert status == 400
    assert body["error"]["details"]["errors"][0]["field"] == "role"


def test_promoting_to_admin_clears_assignments(portal, user_pool, api_event):
    _, user = call(api_event(
        "POST", "/admin/users",
        {"email": "spec@example.com", "role": "specialist", "assignedIndustries": ["retail"]}, role="admin",
    ))
    status, body = call(api_event("PUT", f"/admin/users/{user['userId']}", {"role": "admin"}, role="admin"))
    assert status == 200
    assert body["role"] == "admin"
    assert body["assignedIndustries"] == []
    assert body["version"] == 1
    assert cognito_attributes(user_pool, user["userId"])["custom:role"] == "admin"


def test_delete_removes_identity_and_mirror(portal, user_pool, api_event):
    _, user = call(api_event("POST", "/admin/users", {"email": "bye@example.com", "role": "user"}, role="admin"))
    path = f"/admin/users/{user['userId']}"

    status, _ = call(api_event("DELETE", path, role="admin"))
    assert status == 200
    status, _ = call(api_event("GET", path, role="admin"))
    assert status == 404

    cognito, pool_id = user_pool
    with pytest.raises(ClientError) as exc_info:
        cognito.admin_get_user(UserPoolId=pool_id, Username=user["userId"])
    assert exc_info.value.response["Error"]["Code"] == "UserNotFoundException"


def test_user_management_is_admin_only(portal, user_pool, api_event):
    status, _ = call(api_event("GET", "/admin/users", role="specialist"))
    assert status == 403
