"""
Use Case ↔ Solution Mapping Repository
======================================
  Mapping table   PK USECASE#{useCaseId}   SK SOLUTION#{solutionId}
                  GSI_PK SOLUTION#{solutionId}   GSI_SK USECASE#{useCaseId}   (ReverseIndex)

One item per link, readable from both sides. A mapping is created in a
single transaction that also asserts both endpoints still exist, and the
put itself is create-if-absent, so duplicate links cannot appear even under
concurrent requests.
"""
from __future__ import annotations

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from portal_shared.auth import AuthUser, require_industry_access
from portal_shared.consistency import (
    IntegrityCheck,
    TransactionBuilder,
    check_mapping_has_customer_cases,
    failed_operation_indexes,
    validate_referential_integrity,
)
from portal_shared.dynamodb import (
    REVERSE_INDEX,
    PortalTables,
    find_by_id,
    get_item,
    iter_query,
    key_of,
    mapping_key,
    now_iso,
    solution_key,
    strip_keys,
)
from portal_shared.errors import ConcurrentModificationError, ConflictError, NotFoundError
from portal_shared.logger import get_logger

logger = get_logger(__name__)

_MAPPING_PUT = 2  # position of the Put in the create transaction


class MappingRepository:
    def __init__(self, tables: PortalTables):
        self._tables = tables
        self._table = tables.mapping

    def _use_case(self, use_case_id: str) -> dict:
        use_case = find_by_id(self._tables.use_cases, use_case_id)
        if not use_case:
            raise NotFoundError("Use case not found")
        return use_case

    def _solution(self, solution_id: str) -> dict:
        solution = get_item(self._tables.solutions, solution_key(solution_id))
        if not solution:
            raise NotFoundError("Solution not found")
        return solution

    def create(self, user: AuthUser, use_case_id: str, solution_id: str) -> dict:
        use_case = self._use_case(use_case_id)
        require_industry_access(user, use_case["industryId"])
        self._solution(solution_id)
        if get_item(self._table, mapping_key(use_case_id, solution_id)):
            raise ConflictError("This use case is already linked to the solution")

        mapping = {
            **mapping_key(use_case_id, solution_id),
            "GSI_PK": f"SOLUTION#{solution_id}",
            "GSI_SK": f"USECASE#{use_case_id}",
            "useCaseId": use_case_id,
            "solutionId": solution_id,
            "createdAt": now_iso(),
            "createdBy": user.user_id,
        }
        tx = TransactionBuilder(self._tables.client)
        tx.add_condition_check(self._tables.use_cases.name, key_of(use_case), "attribute_exists(PK)")
        tx.add_condition_check(self._tables.solutions.name, solution_key(solution_id), "attribute_exists(PK)")
        tx.add_put(self._table.name, mapping, condition="attribute_not_exists(PK)")
        try:
            tx.execute()
        except ConcurrentModificationError as e:
            if _MAPPING_PUT in failed_operation_indexes(e):
                raise ConflictError("This use case is already linked to the solution") from e
            raise NotFoundError("Use case or solution no longer exists") from e

        logger.info("Mapping created", extra={"use_case_id": use_case_id, "solution_id": solution_id})
        return strip_keys(mapping)

    def delete(self, user: AuthUser, use_case_id: str, solution_id: str) -> None:
        key = mapping_key(use_case_id, solution_id)
        if not get_item(self._table, key):
            raise NotFoundError("Mapping not found")
        use_case = find_by_id(self._tables.use_cases, use_case_id)
        if use_case:
            require_industry_access(user, use_case["industryId"])
        elif not user.is_admin:
            raise NotFoundError("Use case not found")

        validate_referential_integrity([
            IntegrityCheck(
                description="mapping has customer cases",
                check=lambda: check_mapping_has_customer_cases(
                    solution_id, use_case_id, self._tables.customer_cases
                ),
                error_message="Cannot unlink a solution that has customer cases for this use case",
                dependency="customer-cases",
            ),
        ])
        try:
            self._table.delete_item(Key=key, ConditionExpression=Attr("PK").exists())
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError("Mapping not found") from e
            raise
        logger.info("Mapping deleted", extra={"use_case_id": use_case_id, "solution_id": solution_id})

    def solutions_for_use_case(self, use_case_id: str) -> list[dict]:
        self._use_case(use_case_id)
        solutions = []
        for mapping in iter_query(self._table, KeyConditionExpression=Key("PK").eq(f"USECASE#{use_case_id}")):
            solution = get_item(self._tables.solutions, solution_key(mapping["solutionId"]))
            if solution:
                solutions.append({**strip_keys(solution), "mappedAt": mapping.get("createdAt")})
        return solutions

    def use_cases_for_solution(self, solution_id: str) -> list[dict]:
        self._solution(solution_id)
        use_cases = []
        for mapping in iter_query(
            self._table,
            IndexName=REVERSE_INDEX,
            KeyConditionExpression=Key("GSI_PK").eq(f"SOLUTION#{solution_id}"),
        ):
            use_case = find_by_id(self._tables.use_cases, mapping["useCaseId"])
            if use_case:
                use_cases.append({**strip_keys(use_case), "mappedAt": mapping.get("createdAt")})
        return use_cases
