"""
Customer Case Repository
========================
  CustomerCases table   PK SOLUTION#{solutionId}   SK CUSTOMERCASE#{id}
                        IdIndex GSI on `id`

A customer case documents one use case solved by one solution, so it may
only exist for a (use case, solution) pair that is currently mapped. The
mapping is condition-checked in the same transaction as the put.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from portal_shared.auth import AuthUser, require_industry_access
from portal_shared.consistency import TransactionBuilder, update_with_lock
from portal_shared.documents import attach_document, detach_document, document_keys
from portal_shared.dynamodb import (
    PortalTables,
    customer_case_key,
    find_by_id,
    get_item,
    key_of,
    mapping_key,
    now_iso,
    query_all,
    scan_all,
    strip_keys,
)
from portal_shared.errors import ConcurrentModificationError, NotFoundError, ValidationError
from portal_shared.logger import get_logger
from portal_shared.models import DocumentUploadRequest
from portal_shared.storage import DocumentStore

logger = get_logger(__name__)

DOCUMENT_PREFIX = "customer-cases"
_NOT_MAPPED = "The solution and use case are not linked"


class CustomerCaseRepository:
    def __init__(self, tables: PortalTables, store: DocumentStore):
        self._tables = tables
        self._table = tables.customer_cases
        self._store = store

    def list(self, user: AuthUser, solution_id: str | None = None) -> list[dict]:
        if solution_id:
            cases = query_all(self._table, KeyConditionExpression=Key("PK").eq(f"SOLUTION#{solution_id}"))
        else:
            cases = scan_all(self._table)
        if not user.is_admin:
            allowed = {
                u["id"] for u in scan_all(self._tables.use_cases)
                if u.get("industryId") in set(user.assigned_industries)
            }
            cases = [c for c in cases if c.get("useCaseId") in allowed]
        return sorted((strip_keys(c) for c in cases), key=lambda c: c.get("createdAt", ""), reverse=True)

    def get(self, customer_case_id: str) -> dict:
        return strip_keys(self._find(customer_case_id))

    def _find(self, customer_case_id: str) -> dict:
        item = find_by_id(self._table, customer_case_id)
        if not item:
            raise NotFoundError("Customer case not found")
        return item

    def _check_access(self, user: AuthUser, use_case_id: str) -> None:
        if user.is_admin:
            return
        use_case = find_by_id(self._tables.use_cases, use_case_id)
        if not use_case:
            raise NotFoundError("Use case not found")
        require_industry_access(user, use_case["industryId"])

    def _find_for(self, user: AuthUser, customer_case_id: str) -> dict:
        item = self._find(customer_case_id)
        self._check_access(user, item["useCaseId"])
        return item

    def create(self, user: AuthUser, solution_id: str, use_case_id: str, name: str, description: str) -> dict:
        self._check_access(user, use_case_id)
        link = mapping_key(use_case_id, solution_id)
        if not get_item(self._tables.mapping, link):
            raise ValidationError(_NOT_MAPPED)

        customer_case_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **customer_case_key(solution_id, customer_case_id),
            "id": customer_case_id,
            "solutionId": solution_id,
            "useCaseId": use_case_id,
            "name": name,
            "description": description,
            "documents": [],
            "createdAt": now,
            "updatedAt": now,
            "createdBy": user.user_id,
            "version": 0,
        }
        tx = TransactionBuilder(self._tables.client)
        tx.add_condition_check(self._tables.mapping.name, link, "attribute_exists(PK)")
        tx.add_put(self._table.name, item, condition="attribute_not_exists(PK)")
        try:
            tx.execute()
        except ConcurrentModificationError as e:
            raise ValidationError(_NOT_MAPPED) from e

        logger.info(
            "Customer case created",
            extra={"customer_case_id": customer_case_id, "solution_id": solution_id, "use_case_id": use_case_id},
        )
        return strip_keys(item)

    def update(self, user: AuthUser, customer_case_id: str, changes: dict,
               expected_version: int | None = None) -> dict:
        current = self._find_for(user, customer_case_id)
        version = int(current.get("version", 0)) if expected_version is None else expected_version
        updated = update_with_lock(self._table, key_of(current), {**changes, "updatedAt": now_iso()}, version)
        return strip_keys(updated)

    def delete(self, user: AuthUser, customer_case_id: str) -> None:
        current = self._find_for(user, customer_case_id)
        try:
            self._table.delete_item(Key=key_of(current), ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Customer case not found") from e
            raise
        self._store.delete_quietly(document_keys(current))
        logger.info("Customer case deleted", extra={"customer_case_id": customer_case_id})

    def add_document(self, user: AuthUser, customer_case_id: str, upload: DocumentUploadRequest) -> dict:
        current = self._find_for(user, customer_case_id)
        return attach_document(self._store, self._table, current, DOCUMENT_PREFIX, upload)

    def remove_document(self, user: AuthUser, customer_case_id: str, document_id: str) -> None:
        current = self._find_for(user, customer_case_id)
        detach_document(self._store, self._table, current, document_id)
