"""
Use Case Repository
===================
  UseCases table   PK SUBINDUSTRY#{subIndustryId}   SK USECASE#{id}
                   IdIndex GSI on `id`
  Mapping table    PK USECASE#{id}                  SK SOLUTION#{solutionId}   (dependents)

Use cases denormalize `industryId` from their sub-industry so specialist
access checks need no extra read. Specialists only see and edit use cases
in their assigned industries.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from portal_shared.auth import AuthUser, require_industry_access
from portal_shared.consistency import (
    IntegrityCheck,
    TransactionBuilder,
    check_use_case_has_mappings,
    update_with_lock,
    validate_referential_integrity,
)
from portal_shared.documents import attach_document, detach_document, document_keys
from portal_shared.dynamodb import (
    PortalTables,
    find_by_id,
    key_of,
    now_iso,
    scan_all,
    strip_keys,
    use_case_key,
)
from portal_shared.errors import ConcurrentModificationError, NotFoundError
from portal_shared.logger import get_logger
from portal_shared.models import DocumentUploadRequest
from portal_shared.storage import DocumentStore

logger = get_logger(__name__)

DOCUMENT_PREFIX = "use-cases"


class UseCaseRepository:
    def __init__(self, tables: PortalTables, store: DocumentStore):
        self._tables = tables
        self._table = tables.use_cases
        self._store = store

    def list(self, user: AuthUser) -> list[dict]:
        items = scan_all(self._table)
        if not user.is_admin:
            allowed = set(user.assigned_industries)
            items = [i for i in items if i.get("industryId") in allowed]
        return sorted((strip_keys(i) for i in items), key=lambda i: i.get("createdAt", ""), reverse=True)

    def get(self, use_case_id: str) -> dict:
        return strip_keys(self._find(use_case_id))

    def _find(self, use_case_id: str) -> dict:
        item = find_by_id(self._table, use_case_id)
        if not item:
            raise NotFoundError("Use case not found")
        return item

    def _find_for(self, user: AuthUser, use_case_id: str) -> dict:
        item = self._find(use_case_id)
        require_industry_access(user, item["industryId"])
        return item

    def create(self, user: AuthUser, sub_industry_id: str, name: str, description: str) -> dict:
        sub_industry = find_by_id(self._tables.sub_industries, sub_industry_id)
        if not sub_industry:
            raise NotFoundError("Sub-industry not found")
        require_industry_access(user, sub_industry["industryId"])

        use_case_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **use_case_key(sub_industry_id, use_case_id),
            "id": use_case_id,
            "subIndustryId": sub_industry_id,
            "industryId": sub_industry["industryId"],
            "name": name,
            "description": description,
            "documents": [],
            "createdAt": now,
            "updatedAt": now,
            "createdBy": user.user_id,
            "version": 0,
        }

        tx = TransactionBuilder(self._tables.client)
        tx.add_condition_check(self._tables.sub_industries.name, key_of(sub_industry), "attribute_exists(PK)")
        tx.add_put(self._table.name, item, condition="attribute_not_exists(PK)")
        try:
            tx.execute()
        except ConcurrentModificationError as e:
            raise NotFoundError("Sub-industry not found") from e

        logger.info("Use case created", extra={"use_case_id": use_case_id, "sub_industry_id": sub_industry_id})
        return strip_keys(item)

    def update(self, user: AuthUser, use_case_id: str, changes: dict, expected_version: int | None = None) -> dict:
        current = self._find_for(user, use_case_id)
        version = int(current.get("version", 0)) if expected_version is None else expected_version
        updated = update_with_lock(self._table, key_of(current), {**changes, "updatedAt": now_iso()}, version)
        return strip_keys(updated)

    def delete(self, user: AuthUser, use_case_id: str) -> None:
        current = self._find_for(user, use_case_id)
        validate_referential_integrity([
            IntegrityCheck(
                description="use case is mapped to solutions",
                check=lambda: check_use_case_has_mappings(use_case_id, self._tables.mapping),
                error_message="Cannot delete a use case that is still linked to solutions",
                dependency="mappings",
            ),
        ])
        try:
            self._table.delete_item(Key=key_of(current), ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Use case not found") from e
            raise
        self._store.delete_quietly(document_keys(current))
        logger.info("Use case deleted", extra={"use_case_id": use_case_id})

    def add_document(self, user: AuthUser, use_case_id: str, upload: DocumentUploadRequest) -> dict:
        current = self._find_for(user, use_case_id)
        return attach_document(self._store, self._table, current, DOCUMENT_PREFIX, upload)

    def remove_document(self, user: AuthUser, use_case_id: str, document_id: str) -> None:
        current = self._find_for(user, use_case_id)
        detach_document(self._store, self._table, current, document_id)
