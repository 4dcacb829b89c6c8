"""
Sub-Industry Repository
=======================
  SubIndustries table   PK INDUSTRY#{industryId}   SK SUBINDUSTRY#{id}
                        IdIndex GSI on `id` (locate without knowing the parent)
  UseCases table        PK SUBINDUSTRY#{id}        SK USECASE#{useCaseId}   (children)

Writes that touch the parent go through one TransactWriteItems call:
  create  → ConditionCheck(parent industry exists) + Put
  move    → ConditionCheck(target industry exists) + Delete(old key, version-checked)
            + Put(new key) + Update(industryId) for every use case underneath
so a sub-industry is never written under an industry that was deleted a
moment earlier, and a move never leaves the record half-relocated.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from portal_shared.consistency import (
    IntegrityCheck,
    TransactionBuilder,
    add_version_to_update,
    check_sub_industry_has_use_cases,
    create_optimistic_lock_condition,
    update_with_lock,
    validate_referential_integrity,
)
from portal_shared.dynamodb import (
    PortalTables,
    find_by_id,
    get_item,
    industry_key,
    key_of,
    now_iso,
    query_all,
    scan_all,
    strip_keys,
    sub_industry_key,
    use_case_key,
)
from portal_shared.errors import ConcurrentModificationError, NotFoundError
from portal_shared.logger import get_logger

logger = get_logger(__name__)


class SubIndustryRepository:
    def __init__(self, tables: PortalTables):
        self._tables = tables
        self._table = tables.sub_industries

    def list(self, industry_id: str | None = None) -> list[dict]:
        if industry_id:
            items = query_all(self._table, KeyConditionExpression=Key("PK").eq(f"INDUSTRY#{industry_id}"))
        else:
            items = scan_all(self._table)
        return sorted((strip_keys(i) for i in items), key=lambda i: (i.get("priority") or 0, i.get("name", "")))

    def get(self, sub_industry_id: str) -> dict:
        return strip_keys(self._find(sub_industry_id))

    def _find(self, sub_industry_id: str) -> dict:
        item = find_by_id(self._table, sub_industry_id)
        if not item:
            raise NotFoundError("Sub-industry not found")
        return item

    def _require_industry(self, industry_id: str) -> None:
        if not get_item(self._tables.industries, industry_key(industry_id)):
            raise NotFoundError("Industry not found")

    def create(self, industry_id: str, fields: dict) -> dict:
        self._require_industry(industry_id)

        sub_industry_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **sub_industry_key(industry_id, sub_industry_id),
            "id": sub_industry_id,
            "industryId": industry_id,
            "typicalGlobalCompanies": [],
            "typicalChineseCompanies": [],
            **fields,
            "createdAt": now,
            "updatedAt": now,
            "version": 0,
        }

        tx = TransactionBuilder(self._tables.client)
        tx.add_condition_check(self._tables.industries.name, industry_key(industry_id), "attribute_exists(PK)")
        tx.add_put(self._table.name, item, condition="attribute_not_exists(PK)")
        try:
            tx.execute()
        except ConcurrentModificationError as e:
            # only the parent check can fail for a freshly generated id
            raise NotFoundError("Industry not found") from e

        logger.info("Sub-industry created", extra={"sub_industry_id": sub_industry_id, "industry_id": industry_id})
        return strip_keys(item)

    def update(self, sub_industry_id: str, changes: dict, expected_version: int | None = None) -> dict:
        current = self._find(sub_industry_id)
        version = int(current.get("version", 0)) if expected_version is None else expected_version
        updated = update_with_lock(self._table, key_of(current), {**changes, "updatedAt": now_iso()}, version)
        return strip_keys(updated)

    def delete(self, sub_industry_id: str) -> None:
        current = self._find(sub_industry_id)
        validate_referential_integrity([
            IntegrityCheck(
                description="sub-industry has use cases",
                check=lambda: check_sub_industry_has_use_cases(sub_industry_id, self._tables.use_cases),
                error_message="Cannot delete a sub-industry that still has use cases",
                dependency="use-cases",
            ),
        ])
        try:
            self._table.delete_item(Key=key_of(current), ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Sub-industry not found") from e
            raise
        logger.info("Sub-industry deleted", extra={"sub_industry_id": sub_industry_id})

    def move(self, sub_industry_id: str, new_industry_id: str, expected_version: int | None = None) -> dict:
        """
        Re-parent a sub-industry. The partition key embeds the parent id, so
        this is delete + put, plus re-pointing `industryId` on its use cases.
        """
        current = self._find(sub_industry_id)
        if current["industryId"] == new_industry_id:
            return strip_keys(current)
        self._require_industry(new_industry_id)

        version = int(current.get("version", 0)) if expected_version is None else expected_version
        now = now_iso()
        moved = {
            **current,
            **sub_industry_key(new_industry_id, sub_industry_id),
            "industryId": new_industry_id,
            "updatedAt": now,
            "version": version + 1,
        }
        use_cases = query_all(
            self._tables.use_cases,
            KeyConditionExpression=Key("PK").eq(f"SUBINDUSTRY#{sub_industry_id}"),
        )

        tx = TransactionBuilder(self._tables.client)
        tx.add_condition_check(self._tables.industries.name, industry_key(new_industry_id), "attribute_exists(PK)")
        lock, lock_values = create_optimistic_lock_condition(version)
        tx.add_delete(self._table.name, key_of(current), condition=f"attribute_exists(PK) AND ({lock})",
                      values=lock_values)
        tx.add_put(self._table.name, moved, condition="attribute_not_exists(PK)")
        for use_case in use_cases:
            use_case_version = int(use_case.get("version", 0))
            expression, values = add_version_to_update(
                "SET industryId = :industryId, updatedAt = :updatedAt",
                {":industryId": new_industry_id, ":updatedAt": now},
                use_case_version,
            )
            lock, lock_values = create_optimistic_lock_condition(use_case_version)
            tx.add_update(
                self._tables.use_cases.name,
                use_case_key(sub_industry_id, use_case["id"]),
                expression,
                values={**values, **lock_values},
                condition=f"attribute_exists(PK) AND ({lock})",
            )
        tx.execute()

        logger.info(
            "Sub-industry moved",
            extra={
                "sub_industry_id": sub_industry_id,
                "from_industry": current["industryId"],
                "to_industry": new_industry_id,
                "use_cases": len(use_cases),
            },
        )
        return strip_keys(moved)
