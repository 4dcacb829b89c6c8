"""
Solution Repository
===================
  Solutions table       PK SOLUTION#{id}   SK METADATA
  CustomerCases table   PK SOLUTION#{id}   SK CUSTOMERCASE#{caseId}           (dependents)
  Mapping table         ReverseIndex GSI_PK SOLUTION#{id}                    (dependents)

The long-form description lives in S3 at solutions/{id}/detail.md and is
referenced from the record as `detailMarkdownUrl`.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from portal_shared.auth import AuthUser
from portal_shared.consistency import (
    IntegrityCheck,
    check_solution_has_customer_cases,
    check_solution_has_mappings,
    get_item_with_version,
    update_with_lock,
    validate_referential_integrity,
)
from portal_shared.documents import document_keys
from portal_shared.dynamodb import (
    PortalTables,
    decimal_to_python,
    get_item,
    iter_query,
    now_iso,
    scan_all,
    solution_key,
    strip_keys,
)
from portal_shared.errors import NotFoundError
from portal_shared.logger import get_logger
from portal_shared.storage import DocumentStore

logger = get_logger(__name__)


class SolutionRepository:
    def __init__(self, tables: PortalTables, store: DocumentStore):
        self._tables = tables
        self._table = tables.solutions
        self._store = store

    def list(self, user: AuthUser) -> list[dict]:
        solutions = [strip_keys(s) for s in scan_all(self._table)]
        if not user.is_admin:
            allowed = self._solution_ids_for_industries(set(user.assigned_industries))
            solutions = [s for s in solutions if s["id"] in allowed]
        return sorted(solutions, key=lambda s: s.get("name", ""))

    def _solution_ids_for_industries(self, industry_ids: set[str]) -> set[str]:
        if not industry_ids:
            return set()
        use_cases = scan_all(self._tables.use_cases, FilterExpression=Attr("industryId").is_in(list(industry_ids)))
        solution_ids: set[str] = set()
        for use_case in use_cases:
            for mapping in iter_query(
                self._tables.mapping,
                KeyConditionExpression=Key("PK").eq(f"USECASE#{use_case['id']}"),
            ):
                solution_ids.add(mapping["solutionId"])
        return solution_ids

    def get(self, solution_id: str) -> dict:
        item = get_item(self._table, solution_key(solution_id))
        if not item:
            raise NotFoundError("Solution not found")
        return strip_keys(item)

    def create(self, fields: dict, created_by: str) -> dict:
        solution_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **solution_key(solution_id),
            "id": solution_id,
            **fields,
            "documents": [],
            "createdAt": now,
            "updatedAt": now,
            "createdBy": created_by,
            "version": 0,
        }
        self._table.put_item(Item=item, ConditionExpression=Attr("PK").not_exists())
        logger.info("Solution created", extra={"solution_id": solution_id})
        return strip_keys(decimal_to_python(item))

    def update(self, solution_id: str, changes: dict, expected_version: int | None = None) -> dict:
        key = solution_key(solution_id)
        try:
            current = get_item_with_version(self._table, key)
        except NotFoundError:
            raise NotFoundError("Solution not found") from None
        version = current.version if expected_version is None else expected_version
        return strip_keys(update_with_lock(self._table, key, {**changes, "updatedAt": now_iso()}, version))

    def delete(self, solution_id: str) -> None:
        current = self.get(solution_id)
        validate_referential_integrity([
            IntegrityCheck(
                description="solution has customer cases",
                check=lambda: check_solution_has_customer_cases(solution_id, self._tables.customer_cases),
                error_message="Cannot delete a solution that still has customer cases",
                dependency="customer-cases",
            ),
            IntegrityCheck(
                description="solution is mapped to use cases",
                check=lambda: check_solution_has_mappings(solution_id, self._tables.mapping),
                error_message="Cannot delete a solution that is still linked to use cases",
                dependency="mappings",
            ),
        ])
        try:
            self._table.delete_item(Key=solution_key(solution_id), ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Solution not found") from e
            raise

        leftovers = document_keys(current)
        if current.get("detailMarkdownUrl"):
            leftovers.append(self._store.key_from_url(current["detailMarkdownUrl"]))
        self._store.delete_quietly(leftovers)
        logger.info("Solution deleted", extra={"solution_id": solution_id})

    def upload_markdown(self, solution_id: str, markdown: str) -> dict:
        current = self.get(solution_id)
        url = self._store.put_markdown(solution_id, markdown)
        update_with_lock(
            self._table,
            solution_key(solution_id),
            {"detailMarkdownUrl": url, "updatedAt": now_iso()},
            int(current.get("version", 0)),
        )
        return {"detailMarkdownUrl": url, "message": "Markdown uploaded"}

    def markdown_url(self, solution_id: str) -> dict:
        current = self.get(solution_id)
        if not current.get("detailMarkdownUrl"):
            raise NotFoundError("Solution has no detail markdown")
        s3_key = self._store.key_from_url(current["detailMarkdownUrl"])
        return {
            "url": self._store.presigned_url(s3_key),
            "s3Url": current["detailMarkdownUrl"],
            "expiresIn": self._store.url_ttl,
        }
