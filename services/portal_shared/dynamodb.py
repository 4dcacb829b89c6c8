"""
DynamoDB Helpers
================
Thin wrappers around boto3 shared by every portal service:
- `PortalTables` bundles the per-entity Table resources a handler needs
- key builders for the PK/SK layout of each table
- id lookups through the `IdIndex` GSI instead of full-table scans
- paginated query/scan and Decimal → int/float conversion for JSON output

Table layout (one table per entity):
  Industries      PK INDUSTRY#{id}                SK METADATA
  SubIndustries   PK INDUSTRY#{industryId}        SK SUBINDUSTRY#{id}
  UseCases        PK SUBINDUSTRY#{subIndustryId}  SK USECASE#{id}
  Solutions       PK SOLUTION#{id}                SK METADATA
  Mapping         PK USECASE#{useCaseId}          SK SOLUTION#{solutionId}
                  (ReverseIndex: GSI_PK SOLUTION#{solutionId}, GSI_SK USECASE#{useCaseId})
  CustomerCases   PK SOLUTION#{solutionId}        SK CUSTOMERCASE#{id}
  News / Blogs    PK NEWS#{id} / BLOG#{id}        SK METADATA
  Users           PK USER#{userId}                SK METADATA
  Accounts        PK ACCOUNT#{id}                 SK METADATA
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterator

import boto3
from boto3.dynamodb.conditions import Key

from portal_shared.config import PortalConfig

METADATA = "METADATA"
ID_INDEX = "IdIndex"
REVERSE_INDEX = "ReverseIndex"


class PortalTables:
    """The Table resources for one invocation. Built once per request by a handler."""

    def __init__(self, config: PortalConfig, resource=None):
        resource = resource or boto3.resource("dynamodb")
        self.industries = resource.Table(config.industries_table)
        self.sub_industries = resource.Table(config.sub_industries_table)
        self.use_cases = resource.Table(config.use_cases_table)
        self.solutions = resource.Table(config.solutions_table)
        self.mapping = resource.Table(config.mapping_table)
        self.customer_cases = resource.Table(config.customer_cases_table)
        self.news = resource.Table(config.news_table)
        self.blogs = resource.Table(config.blogs_table)
        self.users = resource.Table(config.users_table)
        self.accounts = resource.Table(config.accounts_table)

    @property
    def client(self):
        # the resource's client carries boto3's Python <-> AttributeValue marshalling
        return self.industries.meta.client


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def industry_key(industry_id: str) -> dict:
    return {"PK": f"INDUSTRY#{industry_id}", "SK": METADATA}


def sub_industry_key(industry_id: str, sub_industry_id: str) -> dict:
    return {"PK": f"INDUSTRY#{industry_id}", "SK": f"SUBINDUSTRY#{sub_industry_id}"}


def use_case_key(sub_industry_id: str, use_case_id: str) -> dict:
    return {"PK": f"SUBINDUSTRY#{sub_industry_id}", "SK": f"USECASE#{use_case_id}"}


def solution_key(solution_id: str) -> dict:
    return {"PK": f"SOLUTION#{solution_id}", "SK": METADATA}


def mapping_key(use_case_id: str, solution_id: str) -> dict:
    return {"PK": f"USECASE#{use_case_id}", "SK": f"SOLUTION#{solution_id}"}


def customer_case_key(solution_id: str, customer_case_id: str) -> dict:
    return {"PK": f"SOLUTION#{solution_id}", "SK": f"CUSTOMERCASE#{customer_case_id}"}


def news_key(news_id: str) -> dict:
    return {"PK": f"NEWS#{news_id}", "SK": METADATA}


def blog_key(blog_id: str) -> dict:
    return {"PK": f"BLOG#{blog_id}", "SK": METADATA}


def user_key(user_id: str) -> dict:
    return {"PK": f"USER#{user_id}", "SK": METADATA}


def account_key(account_id: str) -> dict:
    return {"PK": f"ACCOUNT#{account_id}", "SK": METADATA}


def key_of(item: dict) -> dict:
    return {"PK": item["PK"], "SK": item["SK"]}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_item(table, key: dict) -> dict | None:
    item = table.get_item(Key=key).get("Item")
    return decimal_to_python(item) if item else None


def find_by_id(table, entity_id: str) -> dict | None:
    """
    Locate a child record whose partition key embeds its parent's id.
    One query on the `IdIndex` GSI; the index projects all attributes.
    """
    resp = table.query(
        IndexName=ID_INDEX,
        KeyConditionExpression=Key("id").eq(entity_id),
        Limit=1,
    )
    items = resp.get("Items", [])
    return decimal_to_python(items[0]) if items else None


def iter_query(table, **kwargs) -> Iterator[dict]:
    """Yield every item of a query, following LastEvaluatedKey."""
    while True:
        resp = table.query(**kwargs)
        yield from resp.get("Items", [])
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return
        kwargs["ExclusiveStartKey"] = last_key


def query_all(table, **kwargs) -> list[dict]:
    return [decimal_to_python(i) for i in iter_query(table, **kwargs)]


def scan_all(table, **kwargs) -> list[dict]:
    items: list[dict] = []
    while True:
        resp = table.scan(**kwargs)
        items.extend(decimal_to_python(i) for i in resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def strip_keys(item: dict) -> dict:
    """Drop storage-only attributes before returning an item to a caller."""
    return {k: v for k, v in item.items() if k not in ("PK", "SK", "GSI_PK", "GSI_SK")}


def decimal_to_python(obj: Any) -> Any:
    """
    DynamoDB returns Decimals for all numbers.
    Recursively convert to int or float for JSON serialization.
    """
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    if isinstance(obj, dict):
        return {k: decimal_to_python(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [decimal_to_python(v) for v in obj]
    return obj
