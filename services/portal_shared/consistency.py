"""
Consistency & Integrity Guards
==============================
DynamoDB has no foreign keys and no multi-statement transactions in the SQL
sense, so every service goes through these helpers to keep the catalog
hierarchy sane:

  Dependency checks   bounded existence probes run before a delete
                      ("does this industry still have sub-industries?")
  Optimistic locking  every mutable record carries `version`; an update only
                      lands if the stored version is the one the caller read
  TransactionBuilder  all-or-nothing TransactWriteItems (max 100 operations)
  Integrity runner    ordered list of dependency checks, first hit wins

Nothing here retries. A ConcurrentModificationError goes back to the caller,
who re-reads and decides.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from portal_shared.dynamodb import REVERSE_INDEX, decimal_to_python
from portal_shared.errors import (
    ConcurrentModificationError,
    NotFoundError,
    ReferentialIntegrityViolation,
    TransactionFailedError,
    TransactionTooLargeError,
)
from portal_shared.logger import get_logger

logger = get_logger(__name__)

MAX_TRANSACTION_ITEMS = 100
LOCK_CONDITION = "attribute_not_exists(version) OR version = :currentVersion"
# the SET keyword, not a `#set` / `:set` placeholder or part of a longer word
_SET_KEYWORD = re.compile(r"(?<![#:\w])SET\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Dependency checks
# ---------------------------------------------------------------------------

def _partition_has_items(table, partition_key: str) -> bool:
    resp = table.query(KeyConditionExpression=Key("PK").eq(partition_key), Limit=1)
    return len(resp.get("Items", [])) > 0


def check_industry_has_sub_industries(industry_id: str, sub_industries_table) -> bool:
    return _partition_has_items(sub_industries_table, f"INDUSTRY#{industry_id}")


def check_sub_industry_has_use_cases(sub_industry_id: str, use_cases_table) -> bool:
    return _partition_has_items(use_cases_table, f"SUBINDUSTRY#{sub_industry_id}")


def check_solution_has_customer_cases(solution_id: str, customer_cases_table) -> bool:
    return _partition_has_items(customer_cases_table, f"SOLUTION#{solution_id}")


def check_use_case_has_mappings(use_case_id: str, mapping_table) -> bool:
    return _partition_has_items(mapping_table, f"USECASE#{use_case_id}")


def check_solution_has_mappings(solution_id: str, mapping_table) -> bool:
    resp = mapping_table.query(
        IndexName=REVERSE_INDEX,
        KeyConditionExpression=Key("GSI_PK").eq(f"SOLUTION#{solution_id}"),
        Limit=1,
    )
    return len(resp.get("Items", [])) > 0


def check_mapping_has_customer_cases(solution_id: str, use_case_id: str, customer_cases_table) -> bool:
    """
    Customer cases live under their solution's partition and carry the use
    case id as a plain attribute. DynamoDB applies `Limit` before the filter,
    so keep paging until a match or the end of the partition.
    """
    kwargs: dict[str, Any] = {
        "KeyConditionExpression": Key("PK").eq(f"SOLUTION#{solution_id}"),
        "FilterExpression": Attr("useCaseId").eq(use_case_id),
    }
    while True:
        resp = customer_cases_table.query(**kwargs)
        if resp.get("Items"):
            return True
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return False
        kwargs["ExclusiveStartKey"] = last_key


# ---------------------------------------------------------------------------
# Optimistic locking
# ---------------------------------------------------------------------------

@dataclass
class VersionedItem:
    item: dict
    version: int


def get_item_with_version(table, key: dict) -> VersionedItem:
    """Read a record and its version counter. Records written before versioning read as 0."""
    item = table.get_item(Key=key).get("Item")
    if not item:
        raise NotFoundError("Record not found")
    item = decimal_to_python(item)
    return VersionedItem(item=item, version=int(item.get("version", 0)))


def create_optimistic_lock_condition(current_version: int) -> tuple[str, dict]:
    return LOCK_CONDITION, {":currentVersion": current_version}


def add_version_to_update(
    update_expression: str,
    values: dict,
    current_version: int,
) -> tuple[str, dict]:
    """
    Fold `version = version + 1` (as a literal) into the SET clause of an update.

    The SET clause may sit anywhere in the expression (`REMOVE a SET b = :b`);
    DynamoDB allows only one, so a new clause is added only when there is none.
    """
    values = {**values, ":newVersion": current_version + 1}
    expression = update_expression.strip()
    match = _SET_KEYWORD.search(expression)
    if match:
        rest = expression[match.end():].lstrip()
        expression = f"{expression[:match.end()]} version = :newVersion, {rest}"
    elif expression:
        expression = "SET version = :newVersion " + expression
    else:
        expression = "SET version = :newVersion"
    return expression, values


def update_with_lock(table, key: dict, changes: dict, expected_version: int) -> dict:
    """
    Apply `changes` only if the stored version is still `expected_version`.

    The record must exist: a concurrent delete fails the condition just like
    a concurrent update does. Returns the record as stored afterwards.
    """
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    assignments = []
    for i, (field, value) in enumerate(changes.items()):
        names[f"#f{i}"] = field
        values[f":f{i}"] = value
        assignments.append(f"#f{i} = :f{i}")

    update_expression = "SET " + ", ".join(assignments) if assignments else ""
    update_expression, values = add_version_to_update(update_expression, values, expected_version)
    condition, condition_values = create_optimistic_lock_condition(expected_version)
    values.update(condition_values)

    kwargs: dict[str, Any] = {
        "Key": key,
        "UpdateExpression": update_expression,
        "ConditionExpression": f"attribute_exists(PK) AND ({condition})",
        "ExpressionAttributeValues": values,
        "ReturnValues": "ALL_NEW",
    }
    if names:
        kwargs["ExpressionAttributeNames"] = names

    try:
        resp = table.update_item(**kwargs)
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            logger.warning(
                "Optimistic lock conflict",
                extra={"key": key, "expected_version": expected_version},
            )
            raise ConcurrentModificationError() from e
        raise
    return decimal_to_python(resp["Attributes"])


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def _with_condition(op: dict, condition: str | None, values: dict | None, names: dict | None) -> dict:
    if condition:
        op["ConditionExpression"] = condition
    if values:
        op["ExpressionAttributeValues"] = values
    if names:
        op["ExpressionAttributeNames"] = names
    return op


class TransactionBuilder:
    """
    Queue writes, then commit them atomically with one TransactWriteItems call.

    `client` must be a resource-level client (`table.meta.client`) so items
    are plain Python values rather than typed AttributeValues.
    """

    def __init__(self, client):
        self._client = client
        self._operations: list[dict] = []

    def add_put(self, table_name: str, item: dict, condition: str | None = None,
                values: dict | None = None, names: dict | None = None) -> "TransactionBuilder":
        op = _with_condition({"TableName": table_name, "Item": item}, condition, values, names)
        self._operations.append({"Put": op})
        return self

    def add_update(self, table_name: str, key: dict, update_expression: str,
                   values: dict | None = None, condition: str | None = None,
                   names: dict | None = None) -> "TransactionBuilder":
        op = _with_condition(
            {"TableName": table_name, "Key": key, "UpdateExpression": update_expression},
            condition, values, names,
        )
        self._operations.append({"Update": op})
        return self

    def add_delete(self, table_name: str, key: dict, condition: str | None = None,
                   values: dict | None = None, names: dict | None = None) -> "TransactionBuilder":
        op = _with_condition({"TableName": table_name, "Key": key}, condition, values, names)
        self._operations.append({"Delete": op})
        return self

    def add_condition_check(self, table_name: str, key: dict, condition: str,
                            values: dict | None = None, names: dict | None = None) -> "TransactionBuilder":
        op = _with_condition({"TableName": table_name, "Key": key}, condition, values, names)
        self._operations.append({"ConditionCheck": op})
        return self

    @property
    def operations(self) -> list[dict]:
        return list(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def clear(self) -> None:
        self._operations = []

    def execute(self) -> None:
        if not self._operations:
            return
        if len(self._operations) > MAX_TRANSACTION_ITEMS:
            raise TransactionTooLargeError(
                f"Transaction has {len(self._operations)} operations, "
                f"the limit is {MAX_TRANSACTION_ITEMS}"
            )

        try:
            self._client.transact_write_items(TransactItems=self._operations)
        except ClientError as e:
            if e.response["Error"]["Code"] != "TransactionCanceledException":
                raise
            reasons = e.response.get("CancellationReasons") or []
            message = e.response["Error"].get("Message", "")
            conditional = any(r.get("Code") == "ConditionalCheckFailed" for r in reasons)
            if conditional or (not reasons and "ConditionalCheckFailed" in message):
                logger.warning(
                    "Transaction cancelled by a failed condition",
                    extra={"operations": len(self._operations), "reasons": reasons},
                )
                raise ConcurrentModificationError(reasons=reasons) from e
            raise TransactionFailedError(f"Transaction cancelled: {message}", reasons) from e


def failed_operation_indexes(error: ConcurrentModificationError) -> list[int]:
    """Positions of the queued operations whose condition failed."""
    return [i for i, r in enumerate(error.reasons) if r.get("Code") == "ConditionalCheckFailed"]


# ---------------------------------------------------------------------------
# Referential integrity
# ---------------------------------------------------------------------------

@dataclass
class IntegrityCheck:
    description: str
    check: Callable[[], bool]
    error_message: str
    dependency: str | None = None


def validate_referential_integrity(checks: Iterable[IntegrityCheck]) -> None:
    for integrity_check in checks:
        if integrity_check.check():
            logger.info(
                "Referential integrity check blocked the operation",
                extra={"check": integrity_check.description, "dependency": integrity_check.dependency},
            )
            raise ReferentialIntegrityViolation(
                integrity_check.error_message, dependency=integrity_check.dependency
            )
