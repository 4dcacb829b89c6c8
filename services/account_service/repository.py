"""
Accounts catalog: the customers, partners and vendors the portal references.

  Accounts table   PK ACCOUNT#{id}   SK METADATA

Nothing else in the catalog points at an account, so deletes carry no
dependency checks; edits go through the version counter like every other
record.
"""
from __future__ import annotations

import uuid

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from portal_shared.consistency import get_item_with_version, update_with_lock
from portal_shared.dynamodb import PortalTables, account_key, get_item, now_iso, scan_all, strip_keys
from portal_shared.errors import ConflictError, NotFoundError
from portal_shared.logger import get_logger

logger = get_logger(__name__)

OPTIONAL_FIELDS = ("description", "logoUrl", "website")


class AccountRepository:
    def __init__(self, tables: PortalTables):
        self._table = tables.accounts

    def list(self, account_type: str | None = None) -> list[dict]:
        kwargs = {"FilterExpression": Attr("type").eq(account_type)} if account_type else {}
        items = scan_all(self._table, **kwargs)
        return sorted((strip_keys(i) for i in items), key=lambda a: a.get("name", "").lower())

    def get(self, account_id: str) -> dict:
        item = get_item(self._table, account_key(account_id))
        if not item:
            raise NotFoundError("Account not found")
        return strip_keys(item)

    def create(self, fields: dict) -> dict:
        account_id = str(uuid.uuid4())
        now = now_iso()
        item = {
            **account_key(account_id),
            "id": account_id,
            **{name: None for name in OPTIONAL_FIELDS},
            **fields,
            "createdAt": now,
            "updatedAt": now,
            "version": 0,
        }
        try:
            self._table.put_item(Item=item, ConditionExpression=Attr("PK").not_exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError("Account already exists") from e
            raise
        logger.info("Account created", extra={"account_id": account_id, "type": fields["type"]})
        return strip_keys(item)

    def update(self, account_id: str, changes: dict, expected_version: int | None = None) -> dict:
        key = account_key(account_id)
        try:
            current = get_item_with_version(self._table, key)
        except NotFoundError:
            raise NotFoundError("Account not found") from None
        version = current.version if expected_version is None else expected_version
        updated = update_with_lock(self._table, key, {**changes, "updatedAt": now_iso()}, version)
        logger.info("Account updated", extra={"account_id": account_id, "version": updated["version"]})
        return strip_keys(updated)

    def delete(self, account_id: str) -> None:
        try:
            self._table.delete_item(Key=account_key(account_id), ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Account not found") from e
            raise
        logger.info("Account deleted", extra={"account_id": account_id})
