#!/usr/bin/env python3
"""
Demo script: seed one catalog branch through the deployed API, then show the
integrity guards refusing deletes and a stale save.
Run against AWS: python scripts/seed_data.py --endpoint https://your-api.execute-api.us-east-1.amazonaws.com/v1 --token <Cognito ID token>

The token must belong to a user whose custom:role is "admin".
"""
import argparse
import json
import uuid

import requests

parser = argparse.ArgumentParser()
parser.add_argument("--endpoint", default="http://localhost:4566/restapis/local/v1/_user_request_")
parser.add_argument("--token", required=True, help="Cognito ID token of an admin user")
args = parser.parse_args()

BASE_URL = args.endpoint.rstrip("/")
HEADERS = {"Content-Type": "application/json", "Authorization": args.token}
suffix = uuid.uuid4().hex[:6]


def call(method, path, payload=None):
    resp = requests.request(method, f"{BASE_URL}{path}", json=payload, headers=HEADERS, timeout=30)
    print(f"{method} {path} [{resp.status_code}]: {json.dumps(resp.json(), indent=2)}")
    return resp.status_code, resp.json()


print("Seeding catalog branch...\n")
_, industry = call("POST", "/admin/industries", {
    "name": f"Retail {suffix}", "definition": "Businesses selling goods to consumers", "isVisible": True,
})
_, sub_industry = call("POST", "/admin/sub-industries", {
    "industryId": industry["id"], "name": "Grocery", "definition": "Food and household retail",
})
_, use_case = call("POST", "/specialist/use-cases", {
    "subIndustryId": sub_industry["id"], "name": "Demand Forecasting",
    "description": "Predict store-level demand to cut waste",
})
_, solution = call("POST", "/admin/solutions", {
    "name": f"Retail Analytics {suffix}", "description": "Lakehouse analytics for retail",
})
call("POST", f"/specialist/use-cases/{use_case['id']}/solutions/{solution['id']}")
call("POST", "/specialist/customer-cases", {
    "solutionId": solution["id"], "useCaseId": use_case["id"],
    "name": "FreshMart", "description": "Cut spoilage by 18% with forecasting",
})

print("\nDeleting the industry while sub-industries still reference it...")
status, body = call("DELETE", f"/admin/industries/{industry['id']}")
assert status == 409, "Delete guard broken! Industry with sub-industries was deleted"
print(f"Delete refused: dependency={body['error']['details']['dependency']}")

print("\nSaving the industry twice with the same version...")
path = f"/admin/industries/{industry['id']}"
first, _ = call("PUT", path, {"definition": "First edit", "version": industry["version"]})
second, _ = call("PUT", path, {"definition": "Second edit", "version": industry["version"]})
assert (first, second) == (200, 409), "Optimistic lock broken! Stale save was accepted"
print("Optimistic lock verified: the stale save was rejected.")
