"""
Unit tests for the solution service handler.

Solutions are shared across industries; specialists see the ones linked to
use cases in their industries. A solution cannot be deleted while customer
cases or use case links still point at it.
"""
import json

import pytest


def call(event):
    from solution_service.handler import handler

    result = handler(event, None)
    return result["statusCode"], json.loads(result["body"])


@pytest.fixture
def solution(catalog, api_event):
    status, body = call(api_event(
        "POST", "/admin/solutions",
        {"name": "Retail Analytics", "description": "Lakehouse for retail", "awsServices": "S3, Athena"},
        role="admin",
    ))
    assert status == 201
    return body


def link(portal, use_case_id, industry_id, solution_id):
    portal.use_cases.put_item(Item={
        "PK": "SUBINDUSTRY#grocery", "SK": f"USECASE#{use_case_id}",
        "id": use_case_id, "industryId": industry_id, "version": 0,
    })
    portal.mapping.put_item(Item={
        "PK": f"USECASE#{use_case_id}", "SK": f"SOLUTION#{solution_id}",
        "GSI_PK": f"SOLUTION#{solution_id}", "GSI_SK": f"USECASE#{use_case_id}",
        "useCaseId": use_case_id, "solutionId": solution_id,
    })
    return {"PK": f"USECASE#{use_case_id}", "SK": f"SOLUTION#{solution_id}"}


def test_create_keeps_optional_fields_sent(solution):
    assert solution["awsServices"] == "S3, Athena"
    assert "whyAws" not in solution
    assert solution["version"] == 0
    assert solution["documents"] == []


def test_update_with_stale_version_conflicts(solution, api_event):
    path = f"/admin/solutions/{solution['id']}"
    status, body = call(api_event("PUT", path, {"whyAws": "Scale", "version": 0}, role="admin"))
    assert status == 200
    assert body["whyAws"] == "Scale"
    assert body["version"] == 1

    status, body = call(api_event("PUT", path, {"whyAws": "Cost", "version": 0}, role="admin"))
    assert status == 409
    assert body["error"]["message"] == "The data was modified by another user, please refresh and try again"


def test_specialist_sees_only_solutions_linked_to_their_industries(catalog, solution, api_event):
    _, other = call(api_event("POST", "/admin/solutions", {"name": "Grid Twin", "description": "x"}, role="admin"))
    link(catalog, "uc-1", "retail", solution["id"])

    _, visible = call(api_event("GET", "/admin/solutions", role="specialist", industries=["retail"]))
    assert [s["id"] for s in visible] == [solution["id"]]

    _, everything = call(api_event("GET", "/admin/solutions", role="admin"))
    assert {s["id"] for s in everything} == {solution["id"], other["id"]}


def test_unknown_solution_is_not_found(catalog, api_event):
    status, _ = call(api_event("GET", "/admin/solutions/nope", role="admin"))
    assert status == 404


# ---------------------------------------------------------------------------
# Detail markdown
# ---------------------------------------------------------------------------

def test_markdown_upload_and_presigned_read(solution, api_event, bucket_keys):
    path = f"/admin/solutions/{solution['id']}/detail-markdown"
    status, body = call(api_event("POST", path, {"markdownContent": "# Retail Analytics\n"}, role="admin"))
    assert status == 200
    assert body["detailMarkdownUrl"] == f"s3://test-documents/solutions/{solution['id']}/detail.md"
    assert bucket_keys() == [f"solutions/{solution['id']}/detail.md"]

    status, body = call(api_event("GET", path, role="specialist"))
    assert status == 200
    assert body["expiresIn"] == 3600
    assert f"solutions/{solution['id']}/detail.md" in body["url"]


def test_markdown_read_without_upload_is_not_found(solution, api_event):
    status, _ = call(api_event("GET", f"/admin/solutions/{solution['id']}/detail-markdown", role="admin"))
    assert status == 404


# ---------------------------------------------------------------------------
# Delete guard
# ---------------------------------------------------------------------------

def test_delete_checks_customer_cases_then_mappings(catalog, solution, api_event, bucket_keys):
    sol_id = solution["id"]
    path = f"/admin/solutions/{sol_id}"
    call(api_event("POST", f"{path}/detail-markdown", {"markdownContent": "# Doc"}, role="admin"))
    mapping_key = link(catalog, "uc-1", "retail", sol_id)
    case_key = {"PK": f"SOLUTION#{sol_id}", "SK": "CUSTOMERCASE#cc-1"}
    catalog.customer_cases.put_item(Item={**case_key, "id": "cc-1", "solutionId": sol_id, "useCaseId": "uc-1"})

    status, body = call(api_event("DELETE", path, role="admin"))
    assert status == 409
    assert body["error"]["details"]["dependency"] == "customer-cases"

    catalog.customer_cases.delete_item(Key=case_key)
    status, body = call(api_event("DELETE", path, role="admin"))
    assert status == 409
    assert body["error"]["details"]["dependency"] == "mappings"

    catalog.mapping.delete_item(Key=mapping_key)
    status, _ = call(api_event("DELETE", path, role="admin"))
    assert status == 200
    assert bucket_keys() == []
    assert "Item" not in catalog.solutions.get_item(Key={"PK": f"SOLUTION#{sol_id}", "SK": "METADATA"})
