"""
Unit tests for the accounts catalog handler (admin only).
"""
import json


def call(event):
    from account_service.handler import handler

    result = handler(event, None)
    return result["statusCode"], json.loads(result["body"])


def create(api_event, **fields):
    payload = {"name": "FreshMart", "type": "customer", **fields}
    return call(api_event("POST", "/admin/accounts", payload, role="admin"))


def test_create_fills_optional_fields(portal, api_event):
    status, body = create(api_event, website="https://freshmart.example")
    assert status == 201
    assert body["type"] == "customer"
    assert body["website"] == "https://freshmart.example"
    assert body["description"] is None
    assert body["logoUrl"] is None
    assert body["version"] == 0

    stored = portal.accounts.get_item(Key={"PK": f"ACCOUNT#{body['id']}", "SK": "METADATA"})["Item"]
    assert stored["name"] == "FreshMart"


def test_unknown_type_is_a_validation_error(portal, api_event):
    status, body = create(api_event, type="reseller")
    assert status == 400
    assert body["error"]["details"]["errors"][0]["field"] == "type"
    assert portal.accounts.scan()["Items"] == []


def test_list_sorted_by_name_and_filtered_by_type(portal, api_event):
    create(api_event, name="zenith", type="vendor")
    create(api_event, name="Acme", type="partner")
    create(api_event, name="FreshMart")

    _, everything = call(api_event("GET", "/admin/accounts", role="admin"))
    assert [a["name"] for a in everything] == ["Acme", "FreshMart", "zenith"]

    _, vendors = call(api_event("GET", "/admin/accounts", role="admin", query={"type": "vendor"}))
    assert [a["name"] for a in vendors] == ["zenith"]


def test_update_keeps_unsent_fields_and_rejects_stale_version(portal, api_event):
    _, account = create(api_event, description="Grocery chain")
    path = f"/admin/accounts/{account['id']}"

    status, body = call(api_event("PUT", path, {"type": "partner", "version": 0}, role="admin"))
    assert status == 200
    assert body["type"] == "partner"
    assert body["description"] == "Grocery chain"
    assert body["version"] == 1

    status, body = call(api_event("PUT", path, {"name": "Stale", "version": 0}, role="admin"))
    assert status == 409
    assert body["error"]["code"] == "CONFLICT"

    _, current = call(api_event("GET", path, role="admin"))
    assert current["name"] == "FreshMart"


def test_update_and_delete_missing_account(portal, api_event):
    status, _ = call(api_event("PUT", "/admin/accounts/ghost", {"name": "x"}, role="admin"))
    assert status == 404
    status, body = call(api_event("DELETE", "/admin/accounts/ghost", role="admin"))
    assert status == 404
    assert body["error"]["message"] == "Account not found"


def test_delete(portal, api_event):
    _, account = create(api_event)
    status, body = call(api_event("DELETE", f"/admin/accounts/{account['id']}", role="admin"))
    assert status == 200
    assert body == {"message": "Account deleted"}
    assert portal.accounts.scan()["Items"] == []


def test_accounts_are_admin_only(portal, api_event):
    status, _ = call(api_event("GET", "/admin/accounts", role="specialist", industries=["retail"]))
    assert status == 403
    status, _ = call(api_event("POST", "/admin/accounts", {"name": "x", "type": "customer"}))
    assert status == 401
