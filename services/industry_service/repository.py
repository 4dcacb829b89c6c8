"""
Industry Repository
===================
Industries are the root of the catalog tree:

  Industries table       PK INDUSTRY#{id}   SK METADATA
  SubIndustries table    PK INDUSTRY#{id}   SK SUBINDUSTRY#{subId}   (children)

An industry cannot be deleted while any sub-industry still lives in its
partition of the SubIndustries table. Edits go through the version counter
so two admins editing the same industry cannot silently overwrite each other.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from portal_shared.consistency import (
    IntegrityCheck,
    check_industry_has_sub_industries,
    get_item_with_version,
    update_with_lock,
    validate_referential_integrity,
)
from portal_shared.dynamodb import (
    PortalTables,
    decimal_to_python,
    get_item,
    industry_key,
    now_iso,
    scan_all,
    strip_keys,
)
from portal_shared.errors import NotFoundError
from portal_shared.logger import get_logger

logger = get_logger(__name__)


class IndustryRepository:
    def __init__(self, tables: PortalTables):
        self._tables = tables
        self._table = tables.industries

    def list(self, visible_only: bool = False) -> list[dict]:
        kwargs = {"FilterExpression": Attr("isVisible").eq(True)} if visible_only else {}
        items = scan_all(self._table, **kwargs)
        return sorted((strip_keys(i) for i in items), key=lambda i: i.get("name", ""))

    def get(self, industry_id: str) -> dict:
        item = get_item(self._table, industry_key(industry_id))
        if not item:
            raise NotFoundError("Industry not found")
        return strip_keys(item)

    def find_by_name(self, name: str) -> dict | None:
        matches = scan_all(self._table, FilterExpression=Attr("name").eq(name))
        return strip_keys(matches[0]) if matches else None

    def create(self, fields: dict, created_by: str) -> dict:
        industry_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **industry_key(industry_id),
            "id": industry_id,
            "isVisible": True,
            **fields,
            "createdAt": now,
            "updatedAt": now,
            "createdBy": created_by,
            "version": 0,
        }
        self._table.put_item(Item=item, ConditionExpression=Attr("PK").not_exists())
        logger.info("Industry created", extra={"industry_id": industry_id})
        return strip_keys(decimal_to_python(item))

    def update(self, industry_id: str, changes: dict, expected_version: int | None = None) -> dict:
        """
        Partial update. `expected_version` is the version the caller last saw;
        when omitted, the version read here is used.
        """
        key = industry_key(industry_id)
        try:
            current = get_item_with_version(self._table, key)
        except NotFoundError:
            raise NotFoundError("Industry not found") from None

        version = current.version if expected_version is None else expected_version
        updated = update_with_lock(self._table, key, {**changes, "updatedAt": now_iso()}, version)
        logger.info(
            "Industry updated",
            extra={"industry_id": industry_id, "version": updated["version"], "fields": sorted(changes)},
        )
        return strip_keys(updated)

    def set_visibility(self, industry_id: str, is_visible: bool, expected_version: int | None = None) -> dict:
        return self.update(industry_id, {"isVisible": is_visible}, expected_version)

    def delete(self, industry_id: str) -> None:
        self.get(industry_id)
        validate_referential_integrity([
            IntegrityCheck(
                description="industry has sub-industries",
                check=lambda: check_industry_has_sub_industries(industry_id, self._tables.sub_industries),
                error_message="Cannot delete an industry that still has sub-industries",
                dependency="sub-industries",
            ),
        ])
        try:
            self._table.delete_item(
                Key=industry_key(industry_id),
                ConditionExpression=Attr("PK").exists(),
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Industry not found") from e
            raise
        logger.info("Industry deleted", extra={"industry_id": industry_id})
