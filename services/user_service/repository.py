"""
User Directory
==============
Cognito is the source of truth for identity and the claims the API reads
(`custom:role`, `custom:assignedIndustries`). The Users table mirrors those
attributes so the admin console can list users without paging Cognito:

  Users table   PK USER#{userId}   SK METADATA

Cognito is written first; if the mirror write fails the error propagates and
the admin retries, which re-applies the same attributes.
"""
from __future__ import annotations

import json

import boto3
from botocore.exceptions import ClientError

from portal_shared.config import PortalConfig
from portal_shared.consistency import update_with_lock
from portal_shared.dynamodb import PortalTables, get_item, now_iso, scan_all, strip_keys, user_key
from portal_shared.errors import ConflictError, NotFoundError
from portal_shared.logger import get_logger

logger = get_logger(__name__)


def _role_attributes(role: str, assigned_industries: list[str] | None) -> list[dict]:
    attributes = [{"Name": "custom:role", "Value": role}]
    if assigned_industries is not None:
        attributes.append({"Name": "custom:assignedIndustries", "Value": json.dumps(assigned_industries)})
    return attributes


class UserDirectory:
    def __init__(self, tables: PortalTables, config: PortalConfig, cognito=None):
        self._table = tables.users
        self._pool_id = config.user_pool_id
        self._cognito = cognito or boto3.client("cognito-idp")

    def list(self) -> list[dict]:
        users = [strip_keys(u) for u in scan_all(self._table)]
        return sorted(users, key=lambda u: u.get("email", ""))

    def get(self, user_id: str) -> dict:
        item = get_item(self._table, user_key(user_id))
        if not item:
            raise NotFoundError("User not found")
        return strip_keys(item)

    def create(self, email: str, role: str, assigned_industries: list[str]) -> dict:
        assigned = assigned_industries if role == "specialist" else None
        attributes = [
            {"Name": "email", "Value": email},
            {"Name": "email_verified", "Value": "true"},
            *_role_attributes(role, assigned if assigned else None),
        ]
        try:
            resp = self._cognito.admin_create_user(
                UserPoolId=self._pool_id,
                Username=email,
                UserAttributes=attributes,
                DesiredDeliveryMediums=["EMAIL"],
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "UsernameExistsException":
                raise ConflictError("A user with this email already exists") from e
            raise

        user_id = resp["User"]["Username"]
        now = now_iso()
        item = {
            **user_key(user_id),
            "userId": user_id,
            "email": email,
            "role": role,
            "createdAt": now,
            "updatedAt": now,
            "version": 0,
        }
        if assigned is not None:
            item["assignedIndustries"] = assigned
        self._table.put_item(Item=item)
        logger.info("User created", extra={"user_id": user_id, "role": role})
        return strip_keys(item)

    def update(self, user_id: str, role: str | None, assigned_industries: list[str] | None) -> dict:
        current = self.get(user_id)
        new_role = role or current["role"]
        assigned = assigned_industries if assigned_industries is not None else current.get("assignedIndustries")
        if new_role != "specialist":
            assigned = []

        if role is not None or assigned_industries is not None:
            self._cognito.admin_update_user_attributes(
                UserPoolId=self._pool_id,
                Username=user_id,
                UserAttributes=_role_attributes(new_role, assigned or []),
            )

        changes = {"role": new_role, "assignedIndustries": assigned or [], "updatedAt": now_iso()}
        updated = update_with_lock(self._table, user_key(user_id), changes, int(current.get("version", 0)))
        logger.info("User updated", extra={"user_id": user_id, "role": new_role})
        return strip_keys(updated)

    def delete(self, user_id: str) -> None:
        self.get(user_id)
        try:
            self._cognito.admin_delete_user(UserPoolId=self._pool_id, Username=user_id)
        except ClientError as e:
            # already gone from Cognito: still drop the mirror record
            if e.response["Error"]["Code"] != "UserNotFoundException":
                raise
        self._table.delete_item(Key=user_key(user_id))
        logger.info("User deleted", extra={"user_id": user_id})
