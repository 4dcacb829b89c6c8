"""
Unit tests for the consistency & integrity guards.

These are the invariants every catalog write leans on:
  - dependency checks see children appear and disappear
  - a version counter only moves forward by one, and a stale writer never lands
  - a transaction is all-or-nothing, and never exceeds 100 operations
  - the integrity runner stops at the first blocking dependency
"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError


# ---------------------------------------------------------------------------
# Dependency checks
# ---------------------------------------------------------------------------

def test_industry_dependency_check_follows_child_lifecycle(portal):
    from portal_shared.consistency import check_industry_has_sub_industries

    assert check_industry_has_sub_industries("ind-1", portal.sub_industries) is False

    child_key = {"PK": "INDUSTRY#ind-1", "SK": "SUBINDUSTRY#sub-1"}
    portal.sub_industries.put_item(Item={**child_key, "id": "sub-1", "industryId": "ind-1"})
    assert check_industry_has_sub_industries("ind-1", portal.sub_industries) is True

    portal.sub_industries.delete_item(Key=child_key)
    assert check_industry_has_sub_industries("ind-1", portal.sub_industries) is False


def test_child_checks_only_look_at_their_own_partition(portal):
    from portal_shared.consistency import (
        check_solution_has_customer_cases,
        check_sub_industry_has_use_cases,
        check_use_case_has_mappings,
    )

    portal.use_cases.put_item(Item={"PK": "SUBINDUSTRY#sub-1", "SK": "USECASE#uc-1", "id": "uc-1"})
    portal.customer_cases.put_item(Item={"PK": "SOLUTION#sol-1", "SK": "CUSTOMERCASE#cc-1", "id": "cc-1"})
    portal.mapping.put_item(Item={
        "PK": "USECASE#uc-1", "SK": "SOLUTION#sol-1",
        "GSI_PK": "SOLUTION#sol-1", "GSI_SK": "USECASE#uc-1",
    })

    assert check_sub_industry_has_use_cases("sub-1", portal.use_cases) is True
    assert check_sub_industry_has_use_cases("sub-2", portal.use_cases) is False
    assert check_solution_has_customer_cases("sol-1", portal.customer_cases) is True
    assert check_solution_has_customer_cases("sol-2", portal.customer_cases) is False
    assert check_use_case_has_mappings("uc-1", portal.mapping) is True
    assert check_use_case_has_mappings("uc-2", portal.mapping) is False


def test_solution_mapping_check_uses_reverse_index(portal):
    from portal_shared.consistency import check_solution_has_mappings

    assert check_solution_has_mappings("sol-1", portal.mapping) is False
    portal.mapping.put_item(Item={
        "PK": "USECASE#uc-1", "SK": "SOLUTION#sol-1",
        "GSI_PK": "SOLUTION#sol-1", "GSI_SK": "USECASE#uc-1",
    })
    assert check_solution_has_mappings("sol-1", portal.mapping) is True


def test_mapping_customer_case_check_matches_both_ids(portal):
    from portal_shared.consistency import check_mapping_has_customer_cases

    portal.customer_cases.put_item(Item={
        "PK": "SOLUTION#sol-1", "SK": "CUSTOMERCASE#cc-1",
        "id": "cc-1", "solutionId": "sol-1", "useCaseId": "uc-other",
    })
    assert check_mapping_has_customer_cases("sol-1", "uc-1", portal.customer_cases) is False

    portal.customer_cases.put_item(Item={
        "PK": "SOLUTION#sol-1", "SK": "CUSTOMERCASE#cc-2",
        "id": "cc-2", "solutionId": "sol-1", "useCaseId": "uc-1",
    })
    assert check_mapping_has_customer_cases("sol-1", "uc-1", portal.customer_cases) is True


def test_mapping_customer_case_check_pages_past_empty_filtered_pages():
    """A filtered query can return an empty page that still has more data behind it."""
    from portal_shared.consistency import check_mapping_has_customer_cases

    table = MagicMock()
    table.query.side_effect = [
        {"Items": [], "LastEvaluatedKey": {"PK": "SOLUTION#sol-1", "SK": "CUSTOMERCASE#a"}},
        {"Items": [], "LastEvaluatedKey": {"PK": "SOLUTION#sol-1", "SK": "CUSTOMERCASE#b"}},
        {"Items": [{"id": "cc-9", "useCaseId": "uc-1"}]},
    ]

    assert check_mapping_has_customer_cases("sol-1", "uc-1", table) is True
    assert table.query.call_count == 3
    assert table.query.call_args.kwargs["ExclusiveStartKey"] == {"PK": "SOLUTION#sol-1", "SK": "CUSTOMERCASE#b"}


# ---------------------------------------------------------------------------
# Optimistic locking
# ---------------------------------------------------------------------------

def test_record_without_version_reads_as_zero(portal):
    from portal_shared.consistency import get_item_with_version

    key = {"PK": "INDUSTRY#legacy", "SK": "METADATA"}
    portal.industries.put_item(Item={**key, "id": "legacy", "name": "Legacy"})

    versioned = get_item_with_version(portal.industries, key)
    assert versioned.version == 0
    assert versioned.item["name"] == "Legacy"


def test_get_item_with_version_missing_record_raises_not_found(portal):
    from portal_shared.consistency import get_item_with_version
    from portal_shared.errors import NotFoundError

    with pytest.raises(NotFoundError):
        get_item_with_version(portal.industries, {"PK": "INDUSTRY#nope", "SK": "METADATA"})


def test_lock_condition_accepts_unversioned_or_matching_records():
    from portal_shared.consistency import create_optimistic_lock_condition

    expression, values = create_optimistic_lock_condition(4)
    assert expression == "attribute_not_exists(version) OR version = :currentVersion"
    assert values == {":currentVersion": 4}


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("SET #n = :n", "SET version = :newVersion, #n = :n"),
        ("SET a = :a, b = :b", "SET version = :newVersion, a = :a, b = :b"),
        ("REMOVE imageUrl", "SET version = :newVersion REMOVE imageUrl"),
        ("REMOVE old SET #n = :n", "REMOVE old SET version = :newVersion, #n = :n"),
        ("set #n = :n", "set version = :newVersion, #n = :n"),
        ("REMOVE #set", "SET version = :newVersion REMOVE #set"),
        ("", "SET version = :newVersion"),
    ],
)
def test_add_version_to_update_bumps_by_one(expression, expected):
    from portal_shared.consistency import add_version_to_update

    new_expression, values = add_version_to_update(expression, {":n": "x"}, 5)
    assert new_expression == expected
    assert values == {":n": "x", ":newVersion": 6}


def test_version_bump_merges_into_a_later_set_clause(portal):
    from portal_shared.consistency import add_version_to_update

    key = {"PK": "INDUSTRY#ind-1", "SK": "METADATA"}
    portal.industries.put_item(Item={**key, "id": "ind-1", "name": "Old", "old": "x", "version": 2})

    expression, values = add_version_to_update("REMOVE old SET #n = :n", {":n": "New"}, 2)
    portal.industries.update_item(
        Key=key,
        UpdateExpression=expression,
        ExpressionAttributeNames={"#n": "name"},
        ExpressionAttributeValues=values,
    )

    item = portal.industries.get_item(Key=key)["Item"]
    assert item["name"] == "New"
    assert item["version"] == 3
    assert "old" not in item


def test_update_with_current_version_increments_then_stale_version_fails(portal):
    from portal_shared.consistency import get_item_with_version, update_with_lock
    from portal_shared.errors import ConcurrentModificationError

    key = {"PK": "INDUSTRY#ind-1", "SK": "METADATA"}
    portal.industries.put_item(Item={**key, "id": "ind-1", "name": "Retail", "version": 2})

    updated = update_with_lock(portal.industries, key, {"name": "Retail & CPG"}, expected_version=2)
    assert updated["version"] == 3
    assert updated["name"] == "Retail & CPG"

    with pytest.raises(ConcurrentModificationError):
        update_with_lock(portal.industries, key, {"name": "Stale write"}, expected_version=2)

    stored = get_item_with_version(portal.industries, key)
    assert stored.version == 3
    assert stored.item["name"] == "Retail & CPG"


def test_update_with_lock_never_creates_missing_records(portal):
    from portal_shared.consistency import update_with_lock
    from portal_shared.errors import ConcurrentModificationError

    key = {"PK": "INDUSTRY#ghost", "SK": "METADATA"}
    with pytest.raises(ConcurrentModificationError):
        update_with_lock(portal.industries, key, {"name": "Ghost"}, expected_version=0)
    assert "Item" not in portal.industries.get_item(Key=key)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def test_transaction_with_failing_condition_writes_nothing(portal):
    from portal_shared.consistency import TransactionBuilder
    from portal_shared.errors import ConcurrentModificationError

    tx = TransactionBuilder(portal.client)
    tx.add_put(portal.solutions.name, {"PK": "SOLUTION#a", "SK": "METADATA", "id": "a"})
    tx.add_put(
        portal.solutions.name,
        {"PK": "SOLUTION#b", "SK": "METADATA", "id": "b"},
        condition="attribute_exists(PK)",
    )

    with pytest.raises(ConcurrentModificationError):
        tx.execute()

    assert "Item" not in portal.solutions.get_item(Key={"PK": "SOLUTION#a", "SK": "METADATA"})
    assert "Item" not in portal.solutions.get_item(Key={"PK": "SOLUTION#b", "SK": "METADATA"})


def test_transaction_commits_every_operation(portal):
    from portal_shared.consistency import TransactionBuilder

    portal.industries.put_item(Item={"PK": "INDUSTRY#i", "SK": "METADATA", "id": "i"})
    portal.industries.put_item(Item={"PK": "INDUSTRY#j", "SK": "METADATA", "id": "j", "name": "Old"})
    tx = TransactionBuilder(portal.client)
    tx.add_condition_check(portal.industries.name, {"PK": "INDUSTRY#i", "SK": "METADATA"}, "attribute_exists(PK)")
    tx.add_put(portal.sub_industries.name, {"PK": "INDUSTRY#i", "SK": "SUBINDUSTRY#s", "id": "s"})
    tx.add_update(
        portal.industries.name,
        {"PK": "INDUSTRY#j", "SK": "METADATA"},
        "SET #n = :n",
        values={":n": "Renamed"},
        names={"#n": "name"},
    )
    tx.execute()

    assert portal.sub_industries.get_item(Key={"PK": "INDUSTRY#i", "SK": "SUBINDUSTRY#s"})["Item"]["id"] == "s"
    assert portal.industries.get_item(Key={"PK": "INDUSTRY#j", "SK": "METADATA"})["Item"]["name"] == "Renamed"


def test_transaction_over_limit_fails_before_calling_store():
    from portal_shared.consistency import TransactionBuilder
    from portal_shared.errors import TransactionTooLargeError

    client = MagicMock()
    tx = TransactionBuilder(client)
    for i in range(101):
        tx.add_put("t", {"PK": f"X#{i}", "SK": "METADATA"})

    with pytest.raises(TransactionTooLargeError):
        tx.execute()
    client.transact_write_items.assert_not_called()


def test_empty_transaction_is_a_no_op():
    from portal_shared.consistency import TransactionBuilder

    client = MagicMock()
    TransactionBuilder(client).execute()
    client.transact_write_items.assert_not_called()


def test_exactly_one_hundred_operations_is_allowed():
    from portal_shared.consistency import TransactionBuilder

    client = MagicMock()
    tx = TransactionBuilder(client)
    for i in range(100):
        tx.add_delete("t", {"PK": f"X#{i}", "SK": "METADATA"})
    tx.execute()

    client.transact_write_items.assert_called_once()
    assert len(client.transact_write_items.call_args.kwargs["TransactItems"]) == 100


def _cancelled(reasons):
    return ClientError(
        {
            "Error": {"Code": "TransactionCanceledException", "Message": "Transaction cancelled"},
            "CancellationReasons": reasons,
        },
        "TransactWriteItems",
    )


def test_conditional_cancellation_reports_failed_positions():
    from portal_shared.consistency import TransactionBuilder, failed_operation_indexes
    from portal_shared.errors import ConcurrentModificationError

    client = MagicMock()
    client.transact_write_items.side_effect = _cancelled([{"Code": "None"}, {"Code": "ConditionalCheckFailed"}])
    tx = TransactionBuilder(client).add_put("t", {"PK": "A", "SK": "B"}).add_put("t", {"PK": "C", "SK": "D"})

    with pytest.raises(ConcurrentModificationError) as exc_info:
        tx.execute()
    assert failed_operation_indexes(exc_info.value) == [1]


def test_other_cancellation_becomes_transaction_failed_with_reasons():
    from portal_shared.consistency import TransactionBuilder
    from portal_shared.errors import TransactionFailedError

    reasons = [{"Code": "TransactionConflict", "Message": "conflict"}]
    client = MagicMock()
    client.transact_write_items.side_effect = _cancelled(reasons)

    with pytest.raises(TransactionFailedError) as exc_info:
        TransactionBuilder(client).add_delete("t", {"PK": "A", "SK": "B"}).execute()
    assert exc_info.value.reasons == reasons
    assert exc_info.value.to_body()["error"]["details"] == {"reasons": reasons}


def test_non_transaction_errors_propagate_unchanged():
    from portal_shared.consistency import TransactionBuilder

    error = ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
        "TransactWriteItems",
    )
    client = MagicMock()
    client.transact_write_items.side_effect = error

    with pytest.raises(ClientError) as exc_info:
        TransactionBuilder(client).add_delete("t", {"PK": "A", "SK": "B"}).execute()
    assert exc_info.value is error


def test_builder_exposes_and_clears_queued_operations():
    from portal_shared.consistency import TransactionBuilder

    tx = TransactionBuilder(MagicMock())
    tx.add_condition_check("parents", {"PK": "P", "SK": "M"}, "attribute_exists(PK)")
    tx.add_put("children", {"PK": "P", "SK": "C"}, condition="attribute_not_exists(PK)")

    ops = tx.operations
    assert [next(iter(op)) for op in ops] == ["ConditionCheck", "Put"]
    assert ops[1]["Put"]["ConditionExpression"] == "attribute_not_exists(PK)"

    ops.clear()  # a copy: the builder keeps its queue
    assert len(tx) == 2
    tx.clear()
    assert len(tx) == 0


# ---------------------------------------------------------------------------
# Referential integrity runner
# ---------------------------------------------------------------------------

def test_integrity_runner_raises_first_positive_check_and_stops():
    from portal_shared.consistency import IntegrityCheck, validate_referential_integrity
    from portal_shared.errors import ReferentialIntegrityViolation

    first = MagicMock(return_value=False)
    second = MagicMock(return_value=True)
    third = MagicMock(return_value=True)

    with pytest.raises(ReferentialIntegrityViolation) as exc_info:
        validate_referential_integrity([
            IntegrityCheck("no mappings", first, "has mappings", "mappings"),
            IntegrityCheck("no customer cases", second, "has customer cases", "customer-cases"),
            IntegrityCheck("never reached", third, "unreachable", "other"),
        ])

    assert str(exc_info.value) == "has customer cases"
    assert exc_info.value.dependency == "customer-cases"
    first.assert_called_once()
    second.assert_called_once()
    third.assert_not_called()


def test_integrity_runner_passes_when_nothing_blocks():
    from portal_shared.consistency import IntegrityCheck, validate_referential_integrity

    validate_referential_integrity([IntegrityCheck("clear", lambda: False, "blocked")])
    validate_referential_integrity([])
